"""Market and decision schemas shared by the core, exchange clients and routers"""
