import asyncio
from pathlib import Path

import click
import httpx
from rich.console import Console

from evmstream.abi_events import get_event_topic0s
from evmstream.constants import OVERLAP_WAIT_S, POLL_INTERVAL_S, STREAM_BUFFER_SIZE
from evmstream.core.config import StreamConfig
from evmstream.core.errors import EvmStreamError
from evmstream.core.models import EventLog
from evmstream.log import setup_logging
from evmstream.orchestration.streamer import stream_logs

console = Console()


def _parse_block(value: str | None) -> int | str | None:
    if value is None:
        return None
    v = value.strip().lower()
    if v in ("earliest", "latest", "pending", "safe", "finalized"):
        return v
    return int(v, 16) if v.startswith("0x") else int(v)


def _print_log(log: EventLog, live: bool) -> None:
    tag = "[green]live[/]" if live else "[dim]hist[/]"
    topic0 = log.topics[0][:10] if log.topics else "-"
    removed = " [red]removed[/]" if log.removed else ""
    console.print(
        f"{tag} {log.block_number:>10,} tx={log.tx_index:<4} log={log.log_index:<4} "
        f"{log.address} {topic0} {log.tx_hash}{removed}"
    )


@click.group()
def cli() -> None:
    """evmstream: historic + live EVM logs without gaps or duplicates."""


@cli.command("stream")
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--contract", "contracts", multiple=True, help="Emitter contract address; repeat to OR")
@click.option("--event", "events", multiple=True, help="Event topic0; repeat to OR")
@click.option("--abi", "abi_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="ABI JSON file")
@click.option("--event-name", "event_names", multiple=True, help="Event name from --abi; repeat to OR")
@click.option("--from-block", type=str, default=None, help="First historic block (number or tag)")
@click.option("--overlap-wait", type=float, default=OVERLAP_WAIT_S, show_default=True, help="Seconds to wait per overlapping live entry (at least one poll interval plus margin)")
@click.option("--buffer-size", type=int, default=STREAM_BUFFER_SIZE, show_default=True, help="Live channel capacity")
@click.option("--poll-interval", type=float, default=POLL_INTERVAL_S, show_default=True, help="Seconds between filter polls")
@click.option("--timeout", "timeout_s", type=int, default=20, show_default=True, help="HTTP timeout in seconds")
@click.option("--setup-timeout", type=float, default=None, help="Abort when history + subscription take longer (seconds)")
@click.option("--jsonl-out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Append all entries (NDJSON)")
@click.option("--history-parquet", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write the historic batch to Parquet")
@click.option("--max-live", type=int, default=None, help="Stop after this many live entries")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging")
def stream_cmd(
    rpc: str,
    contracts: tuple[str, ...],
    events: tuple[str, ...],
    abi_path: Path | None,
    event_names: tuple[str, ...],
    from_block: str | None,
    overlap_wait: float,
    buffer_size: int,
    poll_interval: float,
    timeout_s: int,
    setup_timeout: float | None,
    jsonl_out: Path | None,
    history_parquet: Path | None,
    max_live: int | None,
    verbose: bool,
) -> None:
    """Print the matching logs so far, then follow new ones as they are produced."""
    setup_logging(console, verbose=verbose)

    topic0s = list(events)
    if event_names:
        if abi_path is None:
            raise click.UsageError("--event-name requires --abi")
        known = get_event_topic0s(abi_path)
        for name in event_names:
            if name not in known:
                raise click.UsageError(f"event {name!r} not in {abi_path.name}")
            topic0s.append(known[name])
    if not topic0s and not contracts:
        raise click.UsageError("Pass at least one --event/--event-name or --contract")

    try:
        block = _parse_block(from_block)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--from-block") from e

    config = StreamConfig(
        rpc_url=rpc,
        topic0s=topic0s,
        addresses=list(contracts),
        from_block=block,
        timeout_s=timeout_s,
        poll_interval_s=poll_interval,
        buffer_size=buffer_size,
        overlap_wait_s=overlap_wait,
        setup_timeout_s=setup_timeout,
        jsonl_out=jsonl_out,
        history_parquet=history_parquet,
    )

    try:
        stats = asyncio.run(stream_logs(config, _print_log, max_live=max_live))
    except KeyboardInterrupt:
        console.print("[yellow]interrupted[/]")
        return
    except (EvmStreamError, httpx.HTTPError, RuntimeError, TimeoutError) as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[bold]summary[/]: historic={stats.historic}  live={stats.live}")
    if stats.fault is not None:
        raise click.ClickException(f"subscription ended: {stats.fault}")
