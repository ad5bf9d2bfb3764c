"""Maze Control — token-gated activation dashboard for physical props.

Browser visitors spend rationed tokens to fire remote effects (sound players
behind HTTP micro-controllers, Govee smart lights on the LAN) inside an
interactive installation.

Architecture layers (bottom to top):
    1. Triggers     — trigger table models, loader, hot-swappable registry
    2. Devices      — one executor per trigger kind (HTTP, Govee LAN UDP)
    3. Ledger       — SQLite token balances, action log, statistics
    4. Orchestrator — debit, detached dispatch, outcome recording, refunds
    5. API/CLI      — FastAPI session surface, typer command line
"""

__version__ = "0.1.0"
__author__ = "Maze Control Contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
