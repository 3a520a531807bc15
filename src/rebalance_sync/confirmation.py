"""Pluggable confirmation gate between planning and submission"""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional

from rich.console import Console
from rich.prompt import Confirm

from brokerage_base import OrderRequest
from .models import CashLedger
from .report import print_orders


class ConfirmationProvider(ABC):
    @abstractmethod
    async def confirm(self, orders: List[OrderRequest], ledger: CashLedger) -> bool:
        """Return True to submit the orders, False to cancel the sync"""
        pass


class AutoConfirm(ConfirmationProvider):
    """Unattended confirmation; still shows what is about to be submitted"""

    def __init__(self, echo: bool = True, console: Optional[Console] = None):
        self.echo = echo
        self.console = console or Console()

    async def confirm(self, orders: List[OrderRequest], ledger: CashLedger) -> bool:
        if self.echo:
            print_orders(self.console, orders, ledger)
        return True


class TerminalConfirmation(ConfirmationProvider):
    """Interactive prompt; only an explicit yes proceeds"""

    prompt = "Do you wish to execute the suggested transactions?"

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def confirm(self, orders: List[OrderRequest], ledger: CashLedger) -> bool:
        print_orders(self.console, orders, ledger)
        return await asyncio.to_thread(Confirm.ask, self.prompt, console=self.console, default=False)
