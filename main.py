import asyncio
import argparse
import logging
import sys
from pathlib import Path

from src.config.settings import load_config
from src.playback.controller import EndOfCyclePolicy
from src.receiver.inbox import InboxWatcher
from src.receiver.receiver import FileReceiver
from src.sender.sender import FileSender
from src.transfer.errors import TransferError
from src.transfer.progress import format_size

# Setup logging (stdout carries records in send mode)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stderr),
        logging.FileHandler('optxfer.log')
    ]
)
logger = logging.getLogger(__name__)


def build_config(args):
    """Load the YAML config and apply command line overrides"""
    config = load_config(Path(args.config) if args.config else None)

    if args.chunk_size is not None:
        config.barcode.chunk_size = args.chunk_size
    if args.qr_version is not None:
        config.barcode.version = args.qr_version
    if args.ec_level is not None:
        config.barcode.error_correction = args.ec_level
    if args.interval is not None:
        config.playback.interval_ms = args.interval
    if args.end_of_cycle is not None:
        config.playback.end_of_cycle = args.end_of_cycle
    if args.timeout is not None:
        config.receive_timeout = args.timeout

    config.validate()
    return config


def print_record(record, index, total):
    """Renderer for send mode: one record per line on stdout"""
    print(record.to_json(), flush=True)
    logger.debug(f"Showing record {index + 1}/{total}")


async def run_encode(args, config):
    """Encode a file into record files"""
    logger.info("=== Encoding file ===")
    if not args.input:
        raise ValueError("--input is required for encode")

    sender = FileSender(config, renderer=print_record)
    records = await sender.prepare(Path(args.input))
    header = sender.header

    logger.info(f"File: {header.name} ({format_size(header.size)})")
    logger.info(f"Records: {len(records)} (1 header + {header.total_chunks} data)")

    await sender.export(Path(args.out))


async def run_send(args, config):
    """Play the records of a file at the configured cadence"""
    logger.info("=== Starting transmission ===")
    if not args.input:
        raise ValueError("--input is required for send")

    sender = FileSender(config, renderer=print_record)
    records = await sender.prepare(Path(args.input))
    logger.info(
        f"Playing {len(records)} records every {config.playback.interval_ms}ms "
        f"({config.playback.end_of_cycle})"
    )

    try:
        await sender.transmit()
    finally:
        sender.stop()


async def run_receive(args, config):
    """Collect captured records from an inbox directory and rebuild the file"""
    logger.info("=== Starting receiver ===")

    receiver = FileReceiver(Path(args.output), config)
    watcher = InboxWatcher(Path(args.inbox), receiver, config.retry)

    await watcher.start()
    try:
        target = await receiver.receive(fallback_name=args.name)
    finally:
        watcher.stop()

    logger.info(f"Received file written to {target}")


def create_parser():
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        description='optxfer - screen-to-camera file transfer over QR records',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write one JSON record per file for an external QR generator
  python main.py encode --input report.pdf --out ./frames

  # Play records on stdout, one pass, 300ms per record
  python main.py send --input report.pdf --interval 300 --end-of-cycle stop

  # Rebuild a file from scans dropped into ./inbox
  python main.py receive --inbox ./inbox --output ./received
        """
    )

    # Mode selection
    parser.add_argument(
        'mode',
        choices=['encode', 'send', 'receive'],
        help='Execution mode'
    )

    # Files
    parser.add_argument('--input', help='File to encode or send')
    parser.add_argument(
        '--out',
        default='./frames',
        help='Directory for encoded records (default: ./frames)'
    )
    parser.add_argument(
        '--inbox',
        default='./inbox',
        help='Directory the capture tool writes scans into (default: ./inbox)'
    )
    parser.add_argument(
        '--output',
        default='./received',
        help='Directory for reconstructed files (default: ./received)'
    )
    parser.add_argument(
        '--name',
        default='received_file',
        help='File name used when the header carries none'
    )
    parser.add_argument('--config', help='YAML configuration file')

    # Barcode capacity
    parser.add_argument(
        '--chunk-size',
        type=int,
        help='Raw bytes per record (default: derived from QR version and EC level)'
    )
    parser.add_argument('--qr-version', type=int, help='QR symbol version 1-40')
    parser.add_argument(
        '--ec-level',
        choices=['L', 'M', 'Q', 'H'],
        help='QR error correction level'
    )

    # Playback
    parser.add_argument('--interval', type=int, help='Milliseconds per record')
    parser.add_argument(
        '--end-of-cycle',
        choices=[p.value for p in EndOfCyclePolicy],
        help='Loop forever or stop after one pass'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Seconds to wait for a complete transfer when receiving'
    )

    # Logging
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Minimal output'
    )

    return parser


async def async_main(argv=None) -> int:
    """Parse arguments and run the selected mode"""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Adjust logging level
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    try:
        config = build_config(args)
        if args.mode == 'encode':
            await run_encode(args, config)
        elif args.mode == 'send':
            await run_send(args, config)
        elif args.mode == 'receive':
            await run_receive(args, config)
    except TransferError as e:
        logger.error(f"Transfer failed ({e.kind.value}): {e.message}")
        for key, value in e.details.items():
            logger.error(f"  {key}: {value}")
        return 1
    except (ValueError, OSError) as e:
        logger.error(f"Error: {e}")
        return 2
    return 0


def main():
    """Console entry point"""
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")


if __name__ == '__main__':
    main()
