"""HTTP routers. Transport only: every trading rule lives in the engine."""
