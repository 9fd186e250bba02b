#!/usr/bin/env python3
"""
Command line interface for the folder archive pipeline.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from archive_errors import FatalArchiveError
from archive_pipeline import FolderArchivePipeline
from pipeline_configs import CODEC_LEVELS, TAR_FORMATS, AdaptiveConfig, ConfigPresets, PipelineConfig

logger = logging.getLogger(__name__)

PRESETS = {
    'default': PipelineConfig,
    'fast': ConfigPresets.fast,
    'max-ratio': ConfigPresets.max_ratio,
    'low-memory': ConfigPresets.low_memory,
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='folder-archive',
        description="Pack a folder into a single compressed archive and unpack it again",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  folder-archive compress ./docs docs.tar.zst          # Default zstd archive
  folder-archive compress --preset fast ./docs out.lz4 # LZ4 everywhere
  folder-archive decompress docs.tar.zst ./restored    # Unpack (payloads stay compressed)
  folder-archive decompress --decode-entries docs.tar.zst ./restored
  folder-archive list docs.tar.zst
        """
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log output (-v info, -vv debug)')

    commands = parser.add_subparsers(dest='command', required=True)

    compress = commands.add_parser('compress', help='Archive a folder')
    compress.add_argument('input_folder', help='Folder to archive')
    compress.add_argument('output_file', help='Archive file to create')
    compress.add_argument('--preset', choices=[*PRESETS, 'auto'], default='default',
                          help='Base configuration (default: zstd level 21)')
    compress.add_argument('--codec', choices=sorted(CODEC_LEVELS),
                          help='Per-file codec; also used for the container unless --container-codec is given')
    compress.add_argument('-l', '--level', type=int, dest='compression_level',
                          help='Per-file compression level')
    compress.add_argument('--container-codec', choices=sorted(CODEC_LEVELS),
                          help='Codec for the archive as a whole')
    compress.add_argument('--container-level', type=int,
                          help='Container compression level (default: same as --level)')
    compress.add_argument('-w', '--workers', type=int, dest='num_workers',
                          help='Worker threads (default: one per CPU)')
    compress.add_argument('--format', choices=TAR_FORMATS, dest='tar_format',
                          help='Tar header format (default: ustar)')
    compress.add_argument('--no-sort', action='store_true',
                          help='Keep completion order instead of sorting entries by path')
    compress.add_argument('--no-progress', action='store_true',
                          help='Hide the progress bar')
    compress.add_argument('--no-atomic', action='store_true',
                          help='Write the archive in place instead of via a temp file')
    compress.add_argument('--follow-symlinks', action='store_true',
                          help='Archive the targets of symlinked files and folders')

    decompress = commands.add_parser('decompress', help='Extract an archive')
    decompress.add_argument('input_file', help='Archive to extract')
    decompress.add_argument('output_folder', help='Folder to extract into')
    decompress.add_argument('--decode-entries', action='store_true',
                            help='Also undo per-file compression of every entry')

    listing = commands.add_parser('list', help='List archive entries')
    listing.add_argument('input_file', help='Archive to inspect')

    return parser.parse_args(argv)


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Preset first, then explicit flags on top."""
    if args.preset == 'auto':
        base = AdaptiveConfig.auto_configure(Path(args.input_folder))
    else:
        base = PRESETS[args.preset]()
    return base.with_overrides(
        codec=args.codec,
        compression_level=args.compression_level,
        container_codec=args.container_codec,
        container_level=args.container_level,
        num_workers=args.num_workers,
        tar_format=args.tar_format,
        sort_entries=False if args.no_sort else None,
        show_progress=False if args.no_progress else None,
        atomic_write=False if args.no_atomic else None,
        follow_symlinks=True if args.follow_symlinks else None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    try:
        if args.command == 'compress':
            try:
                config = build_config(args)
            except ValueError as e:
                print(f"❌ Invalid configuration: {e}", file=sys.stderr)
                return 2
            FolderArchivePipeline(config).compress_folder(args.input_folder, args.output_file)
        elif args.command == 'decompress':
            FolderArchivePipeline().decompress_folder(
                args.input_file, args.output_folder, decode_entries=args.decode_entries
            )
        elif args.command == 'list':
            FolderArchivePipeline().list_archive(args.input_file)
    except FatalArchiveError as e:
        logger.debug(f"Fatal error context: {e.log_context()}")
        print(f"\n❌ Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
