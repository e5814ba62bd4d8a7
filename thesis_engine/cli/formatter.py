"""
Output formatting for different display modes.
"""
import json
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()


class OutputFormatter:
    """Format replayed classification results for display."""

    @staticmethod
    def _color_code_signal(signal: str) -> str:
        """Apply color coding to primary signals and playbooks."""
        if "Bullish" in signal:
            return f"[green]{signal}[/green]"
        elif "Bearish" in signal:
            return f"[red]{signal}[/red]"
        elif "Choppy" in signal:
            return f"[magenta]{signal}[/magenta]"
        elif signal.startswith("Neutral"):
            return f"[yellow]{signal}[/yellow]"
        else:
            # Initializing and anything unexpected
            return f"[dim]{signal}[/dim]"

    @staticmethod
    def _emission_cell(result: Dict[str, Any]) -> str:
        if result.get("emitted"):
            return "[bold green]EMIT[/bold green]"
        reason = result.get("suppressed_reason")
        return f"[dim]{reason}[/dim]" if reason else "[dim]-[/dim]"

    @staticmethod
    def format_table(results: List[Dict[str, Any]], skip_single_detail: bool = False) -> None:
        """
        Format results as a rich table with colors.

        Args:
            results: Replayed results (``ClassificationResult.to_dict`` plus
                ``emitted`` and ``suppressed_reason``)
            skip_single_detail: Render a single result as a table row too
        """
        if not results:
            console.print("[yellow]No results to display[/yellow]")
            return

        if len(results) == 1 and not skip_single_detail:
            OutputFormatter._format_single_detailed(results[0])
            return

        table = Table(title="Thesis Replay", show_header=True, header_style="bold magenta")
        table.add_column("Time", style="dim", no_wrap=True)
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Thesis", no_wrap=True)
        table.add_column("Score", justify="right")
        table.add_column("Playbook")
        table.add_column("Signal", no_wrap=True)
        table.add_column("Emission", no_wrap=True)

        for result in results:
            table.add_row(
                result["timestamp"][11:19],
                result["symbol"] or result["security_id"],
                result["thesis"],
                f"{result['raw_score']} -> {result['conviction_score']}",
                OutputFormatter._color_code_signal(result["playbook"]),
                OutputFormatter._color_code_signal(result["primary_signal"]),
                OutputFormatter._emission_cell(result),
            )

        console.print(table)

    @staticmethod
    def _format_single_detailed(result: Dict[str, Any]) -> None:
        """Format single result with detailed information."""
        signal = result["primary_signal"]
        if signal == "Bullish":
            border_style = "green"
        elif signal == "Bearish":
            border_style = "red"
        else:
            border_style = "yellow"

        content = (
            f"[bold]Signal:[/bold] {OutputFormatter._color_code_signal(signal)}"
            f"    [bold]Previous:[/bold] {OutputFormatter._color_code_signal(result['previous_primary_signal'])}\n"
            f"[bold]Playbook:[/bold] {OutputFormatter._color_code_signal(result['playbook'])}\n"
            f"[bold]Conviction:[/bold] {result['conviction_score']} (raw {result['raw_score']}, "
            f"bull {result['bullish_score']}, bear {result['bearish_score']})\n"
            f"[bold]Emission:[/bold] {OutputFormatter._emission_cell(result)}\n\n"
            f"[bold]Narrative:[/bold]\n{result['narrative']}\n"
        )

        drivers = result["bullish_drivers"] + result["bearish_drivers"]
        if drivers:
            content += "\n[bold]Drivers:[/bold]\n" + "\n".join(
                OutputFormatter._color_code_signal("Bullish" if d in result["bullish_drivers"] else "Bearish")
                + f" {d}"
                for d in drivers
            )

        console.print(
            Panel(
                content,
                title=f"[*] {result['symbol'] or result['security_id']} Thesis",
                subtitle=f"Updated: {result['timestamp'][:19]}",
                border_style=border_style,
            )
        )

    @staticmethod
    def format_json(results: List[Dict[str, Any]]) -> str:
        """
        Format results as JSON.

        Returns:
            JSON string
        """
        if len(results) == 1:
            return json.dumps(results[0], indent=2)
        return json.dumps(results, indent=2)

    @staticmethod
    def format_statistics(stats: Dict[str, Any]) -> None:
        """Print synthesis statistics as a two-column table."""
        table = Table(title="Replay Statistics", show_header=False, box=None, padding=(0, 1))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        for key in (
            "ticks_processed",
            "ticks_skipped",
            "emissions",
            "suppressed_unchanged",
            "suppressed_initializing",
            "suppressed_rate_limited",
        ):
            table.add_row(key.replace("_", " ").capitalize(), str(stats.get(key, 0)))

        quarantined = stats.get("quarantined_drivers") or []
        if quarantined:
            table.add_row("Quarantined drivers", Text(", ".join(quarantined), style="yellow"))

        console.print(table)

    @staticmethod
    def print_success(message: str) -> None:
        """Print a success message."""
        console.print(f"[OK] {message}", style="green")

    @staticmethod
    def print_error(message: str) -> None:
        """Print an error message."""
        console.print(f"[ERROR] {message}", style="red bold")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print a warning message."""
        console.print(f"[WARN] {message}", style="yellow")
