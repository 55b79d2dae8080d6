"""Development notifier that renders alerts in the terminal."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.domain.errors import DeliveryFailed
from core.domain.models import Alert, Delivered
from core.services.metrics_collector import Result


class ConsoleNotifier:
    """Prints each alert as a rich panel. Always delivers."""

    channel = "console"

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def render(self, alert: Alert) -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Metric", alert.metric_name)
        table.add_row("Current", f"{alert.current_value:.4g}")
        table.add_row("Threshold", f"{alert.threshold_value:.4g}")
        table.add_row("Time", alert.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"))
        return Panel(table, title=f"🚨 {alert.subject}", border_style="red")

    async def send(self, alert: Alert) -> Result[Delivered, DeliveryFailed]:
        self.console.print(self.render(alert))
        return Result.ok(Delivered(channel=self.channel))
