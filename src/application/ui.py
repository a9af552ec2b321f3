"""
Application Layer: Terminal Output
Renders query results as tables using 'rich'.
"""
from typing import Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.domain import MarketItem, PaginationEnvelope, TokenMetadata, Transaction


def _short(address: Optional[str]) -> str:
    if not address:
        return "-"
    return f"{address[:6]}…{address[-4:]}"


class ConsoleRenderer:
    """Prints ledger query results. No state of its own."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def market_items(
        self,
        items: List[MarketItem],
        title: str,
        metadata: Optional[Dict[str, TokenMetadata]] = None,
    ) -> None:
        metadata = metadata or {}
        table = Table(box=box.SIMPLE, expand=True)
        table.add_column("Token", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Owner")
        table.add_column("Creator")
        table.add_column("Royalty", justify="right")
        table.add_column("Price", justify="right", style="green")
        table.add_column("Status", justify="center")

        for item in items:
            token = item.token
            meta = metadata.get(token.cid)
            table.add_row(
                str(token.id),
                meta.name if meta else token.cid,
                _short(token.owner),
                _short(token.creator),
                f"{token.royalty_fee}%",
                f"{item.price.amount} {item.price.currency}" if item.is_listed else "-",
                "🟢 Listed" if item.is_listed else "⚪ Not listed",
            )

        if not items:
            table.add_row("No tokens found", "", "", "", "", "", "")

        self.console.print(Panel(table, title=title, border_style="blue"))

    def history(self, envelope: PaginationEnvelope[Transaction], token_id: int) -> None:
        table = Table(box=box.SIMPLE, expand=True)
        table.add_column("Sold at", style="cyan")
        table.add_column("Seller")
        table.add_column("Buyer")
        table.add_column("Price", justify="right", style="green")
        table.add_column("Transaction", no_wrap=True)

        for tx in envelope.items:
            table.add_row(
                tx.sold_at.strftime("%Y-%m-%d %H:%M:%S"),
                _short(tx.seller),
                _short(tx.buyer),
                f"{tx.price.amount} {tx.price.currency}",
                tx.transaction_hash,
            )

        if not envelope.items:
            table.add_row("No sales on this page", "", "", "", "")

        title = (
            f"Sales history for token {token_id} | "
            f"page {envelope.page}/{envelope.page_count} | {envelope.total} total"
        )
        self.console.print(Panel(table, title=title, border_style="green"))

    def error(self, message: str) -> None:
        self.console.print(f"[red]❌ {message}[/red]")
