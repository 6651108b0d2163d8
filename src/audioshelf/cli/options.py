# ABOUTME: Shared Click options for Audioshelf CLI commands.
# ABOUTME: Provides reusable decorators for the database, covers directory, and scan policy.

from pathlib import Path

import click

from audioshelf.core.candidates import RepresentativePolicy, ScanConfig
from audioshelf.core.covers import DEFAULT_COVERS_DIR
from audioshelf.core.scanner import DEFAULT_MAX_DEPTH
from audioshelf.db.connection import DEFAULT_DB_PATH
from audioshelf.formats.audio import AUDIO_EXTENSIONS, AUDIOBOOK_EXTENSIONS, parse_extensions

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to library database (default: {DEFAULT_DB_PATH})",
)

covers_dir_option = click.option(
    "--covers-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help=f"Directory for extracted cover images (default: {DEFAULT_COVERS_DIR})",
)


def scan_options(func):
    """Attach the options that control directory scanning."""
    options = [
        click.option(
            "--max-depth",
            type=click.IntRange(min=0),
            default=DEFAULT_MAX_DEPTH,
            show_default=True,
            help="Deepest folder level to scan below the root.",
        ),
        click.option(
            "--recursive/--no-recursive",
            default=True,
            help="Descend into subfolders (default: recursive).",
        ),
        click.option(
            "--extensions",
            default=",".join(sorted(AUDIO_EXTENSIONS)),
            help="Comma-separated audio extensions to recognize.",
        ),
        click.option(
            "--audiobook-extensions",
            default=",".join(sorted(AUDIOBOOK_EXTENSIONS)),
            help="Comma-separated single-file audiobook extensions (e.g. m4b).",
        ),
        click.option(
            "--representative",
            type=click.Choice([p.value for p in RepresentativePolicy]),
            default=RepresentativePolicy.LARGEST.value,
            help="Metadata source for folders without an .m4b file.",
        ),
        click.option(
            "-j", "--workers",
            type=click.IntRange(min=1),
            default=1,
            help="Parallel tag readers per folder.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_scan_config(
    extensions: str, audiobook_extensions: str, representative: str, workers: int
) -> ScanConfig:
    """Build a ScanConfig from the scan option values."""
    return ScanConfig(
        audio_extensions=parse_extensions(extensions),
        audiobook_extensions=parse_extensions(audiobook_extensions),
        representative_policy=RepresentativePolicy(representative),
        workers=workers,
    )
