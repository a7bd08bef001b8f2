"""
Logging setup and the startup banner.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import SERVICE_NAME, VERSION, Settings

console = Console()

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "http": logging.INFO,
    "debug": logging.DEBUG,
}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, for log collectors.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(settings: Settings, console_override: Optional[Console] = None) -> None:
    """
    Configure the root logger for the gateway.

    Args:
        settings (Settings): Provides `log_level` and `log_format`.
        console_override (Console, optional): Console for the rich handler.
    """
    level = _LEVELS.get(settings.log_level, logging.INFO)

    if settings.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(console=console_override or console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(level=level, handlers=[handler], force=True)
    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def print_banner(settings: Settings, project_id: Optional[str] = None) -> None:
    base_url = f"http://{settings.host}:{settings.port}"

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Server", base_url)
    table.add_row("Project", project_id or settings.project_id or "auto-detect")
    table.add_row("Location", settings.location)
    table.add_row("Chat", f"{base_url}/v1/chat/completions")
    table.add_row("Models", f"{base_url}/v1/models")
    table.add_row("Health", f"{base_url}/health")

    console.print(Panel(table, title=f"[bold]{SERVICE_NAME} {VERSION}[/bold]", subtitle="Vertex AI gateway", expand=False))
