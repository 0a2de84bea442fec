"""
fusionswap/cli/verify.py

fusionswap verify - settlement journal verification
===================================================

Usage:
    fusionswap verify <journal>                       Human output (default)
    fusionswap verify <journal> --format json         Machine-readable JSON
    fusionswap verify <journal> --format compact      One-line pipeline output
    fusionswap verify <journal> --export report.json  Export full audit report
    fusionswap verify <journal> --entity <id>         Show one entity's history
    fusionswap verify <journal> --quiet               Exit code only

Exit codes:
    0  Journal fully valid  (chain + signatures + schema)
    1  Journal has violations
    2  Error  (file missing, malformed JSON, mixed versions)
"""

import hashlib
import json
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

import click

from fusionswap.cli.style import BAR_LIGHT, Color, banner, row_fail, row_info, row_ok
from fusionswap.core.canonical import canonicalize
from fusionswap.journal.models import EventEnvelope, JournalVersionError
from fusionswap.journal.replay import JournalReplay, ReplaySummary

EXIT_VALID    = 0
EXIT_INVALID  = 1
EXIT_ERROR    = 2


def _chain_head(replay: JournalReplay) -> Tuple[Optional[str], Optional[int]]:
    """
    head_hash = hex(SHA-256(JCS(last_entry.to_chain_dict())))

    The causal_hash the next entry would carry; a commitment to the whole
    journal suitable for external anchoring.
    """
    if not replay.envelopes:
        return None, None
    last = replay.envelopes[-1]
    return hashlib.sha256(canonicalize(last.to_chain_dict())).hexdigest(), last.sequence


@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json", "compact"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human, json (CI/automation), compact (pipelines).",
)
@click.option(
    "--export",
    "export_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Export the full audit report to a JSON file.",
)
@click.option(
    "--entity",
    type=str,
    default=None,
    metavar="ID",
    help="List the journal entries that reference one auction, order or escrow.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def verify_command(
    journal:     str,
    fmt:         str,
    export_path: Optional[str],
    entity:      Optional[str],
    quiet:       bool,
    no_color:    bool,
) -> None:
    """
    Verify a settlement journal: chain integrity, signatures, schema.

    JOURNAL is the path to a journal.jsonl file.

    \b
    Examples:
      fusionswap verify .fusionswap/journal/journal.jsonl
      fusionswap verify journal.jsonl --format json
      fusionswap verify journal.jsonl --quiet && echo "clean"
    """
    Color.configure(not no_color)
    journal_path = Path(journal)

    if not journal_path.exists():
        _emit_error(f"Journal not found: {journal}", fmt, quiet)
        sys.exit(EXIT_ERROR)

    replay  = JournalReplay()
    t_start = time.perf_counter()

    try:
        replay.load(journal_path)
    except (ValueError, JournalVersionError) as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(EXIT_ERROR)

    summary   = replay.verify()
    elapsed   = time.perf_counter() - t_start
    head_hash, head_sequence = _chain_head(replay)
    valid     = not summary.violations

    if export_path:
        try:
            replay.export_json(Path(export_path))
        except OSError as e:
            if not quiet:
                click.echo(Color.yellow(f"\n  ⚠️   Export failed: {e}"), err=True)

    if quiet:
        sys.exit(EXIT_VALID if valid else EXIT_INVALID)

    history = replay.events_for(entity) if entity else None

    if fmt == "json":
        _output_json(summary, journal_path, elapsed, head_hash, head_sequence, valid, history)
    elif fmt == "compact":
        _output_compact(summary, journal_path, elapsed, valid)
    else:
        _output_human(summary, journal_path, elapsed, head_hash, head_sequence,
                      valid, export_path, entity, history)

    sys.exit(EXIT_VALID if valid else EXIT_INVALID)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    head_hash:     Optional[str],
    head_sequence: Optional[int],
    valid:         bool,
    export_path:   Optional[str],
    entity:        Optional[str],
    history:       Optional[List[EventEnvelope]],
) -> None:
    banner("Journal Verification")

    click.echo(row_info("Journal", str(journal_path)))
    click.echo(row_info("Entries", f"{summary.total_entries:,}"))
    click.echo(row_info("Version",
        f"v{summary.journal_version}" if summary.journal_version else "unknown"
    ))
    click.echo(row_info("Signers",
        ", ".join(summary.signers_seen) if summary.signers_seen else "-"
    ))
    click.echo()

    def of_type(kind: str) -> int:
        return sum(1 for v in summary.violations if v.violation_type == kind)

    chain_breaks = of_type("chain_break")
    gaps         = of_type("sequence_gap")
    schema       = of_type("schema") + of_type("duplicate_nonce")
    total        = summary.total_entries

    if chain_breaks:
        click.echo(row_fail("Chain", Color.red(f"{chain_breaks} break(s) detected")))
    else:
        click.echo(row_ok("Chain", "intact, all causal hashes valid"))

    if summary.invalid_signatures:
        click.echo(row_fail("Signatures",
            f"{summary.valid_signatures:,} valid  "
            + Color.red(f"{summary.invalid_signatures:,} INVALID")
        ))
    else:
        click.echo(row_ok("Signatures", f"{summary.valid_signatures:,} / {total:,} valid"))

    if schema:
        click.echo(row_fail("Schema", Color.red(f"{schema} violation(s)")))
    else:
        click.echo(row_ok("Schema", "all entries conform"))

    if gaps:
        click.echo(row_fail("Sequence", Color.red(f"{gaps} gap(s) detected")))
    elif total:
        click.echo(row_ok("Sequence", f"0 → {total - 1:,}  (no gaps)"))
    else:
        click.echo(row_ok("Sequence", "empty journal"))

    click.echo()

    if summary.first_timestamp:
        click.echo(row_info("First entry", summary.first_timestamp))
        click.echo(row_info("Last entry", summary.last_timestamp))

    if head_hash and head_sequence is not None:
        click.echo(row_info("Chain Head",
            Color.cyan(head_hash[:16] + "..." + head_hash[-8:])
            + Color.dim(f"  [seq {head_sequence}]")
        ))

    if summary.event_type_counts:
        click.echo(row_info("Events", "  ".join(
            f"{Color.cyan(k)}: {v:,}" for k, v in sorted(summary.event_type_counts.items())
        )))

    click.echo(row_info("Verified", f"{elapsed:.3f}s"))
    if export_path:
        click.echo(row_info("Exported", export_path))
    click.echo()

    if history is not None:
        click.echo(row_info("History", f"{entity}  ({len(history)} entries)"))
        for env in history:
            click.echo(f"    [{env.sequence:04d}] {env.timestamp}  {Color.cyan(env.event_type)}")
        click.echo()

    if summary.violations:
        click.echo(f"  {BAR_LIGHT}")
        for v in summary.violations:
            click.echo(
                f"  {Color.red(str(v.at_sequence)):>6}  "
                f"{Color.yellow(f'{v.violation_type:<18}')}  {v.detail}"
            )
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if valid:
        click.echo(Color.green(Color.bold("  ✅  VALID  ·  0 violations  ·  journal integrity confirmed")))
    else:
        click.echo(Color.red(Color.bold(
            f"  ❌  INVALID  ·  {len(summary.violations)} violation(s)  ·  journal integrity compromised"
        )))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    head_hash:     Optional[str],
    head_sequence: Optional[int],
    valid:         bool,
    history:       Optional[List[EventEnvelope]],
) -> None:
    out = {
        "fusionswap_verify": {
            "journal":             str(journal_path),
            "journal_version":     summary.journal_version,
            "total_entries":       summary.total_entries,
            "journal_valid":       valid,
            "chain_valid":         summary.chain_valid,
            "chain_head_hash":     head_hash,
            "chain_head_sequence": head_sequence,
            "valid_signatures":    summary.valid_signatures,
            "invalid_signatures":  summary.invalid_signatures,
            "violation_count":     len(summary.violations),
            "signers_seen":        summary.signers_seen,
            "event_type_counts":   summary.event_type_counts,
            "first_timestamp":     summary.first_timestamp,
            "last_timestamp":      summary.last_timestamp,
            "elapsed_seconds":     round(elapsed, 3),
            "violations": [
                {
                    "at_sequence":    v.at_sequence,
                    "record_id":      v.record_id,
                    "violation_type": v.violation_type,
                    "detail":         v.detail,
                }
                for v in summary.violations
            ],
        }
    }
    if history is not None:
        out["fusionswap_verify"]["history"] = [env.to_dict() for env in history]
    click.echo(json.dumps(out, indent=2))


# ── Compact output ────────────────────────────────────────────────────────────

def _output_compact(
    summary:      ReplaySummary,
    journal_path: Path,
    elapsed:      float,
    valid:        bool,
) -> None:
    """
    VALID    journal.jsonl   120 entries  0 violations  0.041s
    INVALID  journal.jsonl    80 entries  3 violation(s)  0.022s
    """
    name = journal_path.name
    if valid:
        line = (
            Color.green(f"{'VALID':<8}")
            + f"  {name:<30}  {summary.total_entries:>8,} entries  0 violations  {elapsed:.3f}s"
        )
    else:
        line = (
            Color.red(f"{'INVALID':<8}")
            + f"  {name:<30}  {summary.total_entries:>8,} entries  "
            + Color.red(f"{len(summary.violations)} violation(s)")
            + f"  {elapsed:.3f}s"
        )
    click.echo(line)


def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "fusionswap_verify": {
                "error":         msg,
                "chain_valid":   False,
                "journal_valid": False,
            }
        }))
    else:
        click.echo(Color.red(f"\n  ❌  ERROR: {msg}\n"), err=True)
