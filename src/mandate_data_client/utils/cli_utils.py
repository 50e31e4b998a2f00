from uuid import UUID
from rich.console import Console
import typer

def get_rich_console() -> Console: return Console(stderr=True)

def parse_uuid(value: str, what: str = "id") -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise typer.BadParameter(f"'{value}' is not a valid {what} (UUID expected)")

def format_limit(limit) -> str:
    return "∞" if limit is None else str(limit)
