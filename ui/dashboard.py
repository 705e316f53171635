"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import AppConfig
from ui.log_utils import write_cli_log

console = Console()


class RequestInfo:
    """Info about a single proxied request."""

    def __init__(self, method: str, path: str, status: int, timestamp: datetime):
        self.method = method
        self.path = path[:60] + "..." if len(path) > 60 else path
        self.status = status
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing forwarded and rejected requests."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 10
        self._request_count = {"forwarded": 0, "rejected": 0, "failed": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_forwarded(self, method: str, path: str, status: int) -> None:
        """Log a request relayed from the upstream."""
        with self._lock:
            self._request_count["forwarded"] += 1
            self._remember(method, path, status)
            self._refresh()
        write_cli_log("FORWARD", f"{method} {path}", status=status)

    def log_rejected(self, method: str, path: str, status: int, reason: str) -> None:
        """Log a request refused before reaching the upstream."""
        with self._lock:
            self._request_count["rejected"] += 1
            self._remember(method, path, status)
            self._refresh()
        write_cli_log("REJECT", f"{method} {path}", status=status, reason=reason)

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._request_count["failed"] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
        write_cli_log("ERROR", message[:200], route=route, status=status)

    def log_warning(self, message: str) -> None:
        write_cli_log("WARN", message)

    def _remember(self, method: str, path: str, status: int) -> None:
        self._recent.insert(0, RequestInfo(method, path, status, datetime.now()))
        self._recent = self._recent[: self._max_recent]

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Ollama Shim", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Forwarded: {self._request_count['forwarded']}", style="green")
        stats.append("  |  ")
        stats.append(f"Rejected: {self._request_count['rejected']}", style="yellow")
        stats.append("  |  ")
        stats.append(f"Failed: {self._request_count['failed']}", style="red")
        stats.append("  |  ")
        stats.append(f"Listen: {self.config.listen_address}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=8)
            table.add_column("Path", ratio=2)
            table.add_column("Status", width=6)

            for info in self._recent:
                status_style = "green" if info.status < 400 else "red"
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.method,
                    info.path,
                    Text(str(info.status), style=status_style),
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Requests[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Upstream: {self.config.ollama_url}  |  "
                f"Keys: {len(self.config.valid_keys)} ({self.config.key_source})",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")


class ConsoleLogger:
    """Line-per-event logger for non-interactive runs (containers, CI)."""

    def __init__(self, output: Console | None = None):
        self._console = output or console

    def log_forwarded(self, method: str, path: str, status: int) -> None:
        self._console.print(f"[green]{status}[/green] {escape(method)} {escape(path)}")
        write_cli_log("FORWARD", f"{method} {path}", status=status)

    def log_rejected(self, method: str, path: str, status: int, reason: str) -> None:
        self._console.print(
            f"[yellow]{status}[/yellow] {escape(method)} {escape(path)} "
            f"[dim]({escape(reason)})[/dim]"
        )
        write_cli_log("REJECT", f"{method} {path}", status=status, reason=reason)

    def log_error(self, route: str, status: int, message: str) -> None:
        self._console.print(f"[red]{status}[/red] {escape(route)}: {escape(message)}")
        write_cli_log("ERROR", message[:200], route=route, status=status)

    def log_warning(self, message: str) -> None:
        self._console.print(f"[yellow]Warning:[/yellow] {escape(message)}")
        write_cli_log("WARN", message)
