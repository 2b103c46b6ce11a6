"""
Trading Engine Components

Core trading execution components:
- PnLLedger (pnl_ledger): FIFO realized P&L over a trade history
- FillReconciler (fill_reconciler): order response -> trade record
- PositionManager (position_manager): open positions derived from balances
- ExposureGates (exposure_gates): confidence and exposure checks before ordering
- OrderLogger (order_logger): audit log entries for every cycle outcome
- AutoTradeController (auto_trade_controller): the start/stop state machine and evaluation cycle
"""
