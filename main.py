#!/usr/bin/env python3
"""Run Recorder Toolkit - Unified CLI Entry Point.

This module provides a unified command-line interface for recording gameplay
runs. It routes commands to the appropriate core modules.

Usage:
    python main.py monitor 0 --mode local -o output/session
    python main.py monitor gameplay.mp4 --mode remote
    python main.py classify-frame end_screen.png --mode local --debug
    python main.py scan-video gameplay.mp4 -o scan.json

For detailed help on each command:
    python main.py monitor --help
    python main.py classify-frame --help
    python main.py scan-video --help
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional


def get_output_path(input_path: str, suffix: str, explicit_output: Optional[str] = None) -> str:
    """Get output path with default to output/ directory with timestamp.

    Args:
        input_path: Path to input file.
        suffix: Suffix to append to input filename (e.g., '_scan.json', '_session').
        explicit_output: Explicitly specified output path (takes priority).

    Returns:
        Output path with timestamp (e.g., output/gameplay_scan_20250111_143052.json).
    """
    if explicit_output:
        return explicit_output

    # Create output directory if it doesn't exist
    output_dir = Path('output')
    output_dir.mkdir(exist_ok=True)

    # Construct default path with timestamp
    from datetime import datetime
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    input_stem = Path(input_path).stem

    # Insert timestamp before file extension
    # e.g., "_scan.json" becomes "_scan_20250111_143052.json"
    suffix_parts = suffix.rsplit('.', 1)
    if len(suffix_parts) == 2:
        suffix_with_timestamp = f"{suffix_parts[0]}_{timestamp}.{suffix_parts[1]}"
    else:
        suffix_with_timestamp = f"{suffix}_{timestamp}"

    return str(output_dir / f"{input_stem}{suffix_with_timestamp}")


def ensure_output_dir(output_path: str) -> None:
    """Ensure output directory exists for the given path.

    Args:
        output_path: Full path to output file.
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the run recorder toolkit.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description='Run Recorder Toolkit - Record gameplay runs and keep the good ones',
        epilog='For detailed help: python main.py <command> --help'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        title='Available Commands',
        description='Select a command to run',
        help='Use <command> --help for more information'
    )

    # =========================================================================
    # LIVE MONITORING COMMAND
    # =========================================================================
    monitor_parser = subparsers.add_parser(
        'monitor',
        help='Watch a live stream and record qualifying runs',
        description='Watch a capture device, stream URL or video file, record each run '
                    'and keep runs scoring 45+ (remote) or all runs for review (local)'
    )
    monitor_parser.add_argument(
        'source',
        help='Capture device index (e.g. 0), stream URL or video file'
    )
    monitor_parser.add_argument(
        '-m', '--mode',
        choices=['remote', 'local'],
        default='remote',
        help='Detection mode (default: remote)'
    )
    monitor_parser.add_argument(
        '-o', '--output',
        help='Output directory for retained attempts (default: output/{source_stem}_session_YYYYMMDD_HHMMSS)'
    )
    monitor_parser.add_argument(
        '--model',
        help='OpenAI model for remote mode (default: REMOTE_MODEL or gpt-4o)'
    )
    monitor_parser.add_argument(
        '--duration',
        type=float,
        help='Stop after this many seconds (default: until the source ends or Ctrl-C)'
    )
    monitor_parser.add_argument(
        '--no-realtime',
        action='store_true',
        help='Read video files as fast as possible instead of at their frame rate'
    )
    monitor_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    # =========================================================================
    # SINGLE FRAME CLASSIFICATION COMMAND
    # =========================================================================
    frame_parser = subparsers.add_parser(
        'classify-frame',
        help='Classify a single screenshot',
        description='Check whether a screenshot shows the end-of-run screen'
    )
    frame_parser.add_argument(
        'image',
        help='Path to image file'
    )
    frame_parser.add_argument(
        '-m', '--mode',
        choices=['remote', 'local'],
        default='local',
        help='Detection mode (default: local)'
    )
    frame_parser.add_argument(
        '--model',
        help='OpenAI model for remote mode (default: REMOTE_MODEL or gpt-4o)'
    )
    frame_parser.add_argument(
        '--debug',
        action='store_true',
        help='Print per-cue row counts (local mode only)'
    )
    frame_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    # =========================================================================
    # OFFLINE VIDEO SCAN COMMAND
    # =========================================================================
    scan_parser = subparsers.add_parser(
        'scan-video',
        help='Find end-of-run screens in a recorded video',
        description='Scan a recorded video with the local classifier (free, no API key needed)'
    )
    scan_parser.add_argument(
        'video',
        help='Path to video file'
    )
    scan_parser.add_argument(
        '-o', '--output',
        help='Output file path (.json, default: output/{video_stem}_scan_YYYYMMDD_HHMMSS.json)'
    )
    scan_parser.add_argument(
        '--interval',
        type=float,
        default=1.0,
        help='Frame sampling interval in seconds (default: 1.0)'
    )
    scan_parser.add_argument(
        '--max-duration',
        type=float,
        help='Maximum video duration to scan in seconds'
    )
    scan_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print each detection'
    )

    # Parse arguments
    args = parser.parse_args(argv)

    # Show help if no command provided
    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # =========================================================================
    # ROUTE TO APPROPRIATE COMMAND HANDLER
    # =========================================================================

    try:
        if args.command == 'monitor':
            return cmd_monitor(args)
        elif args.command == 'classify-frame':
            return cmd_classify_frame(args)
        elif args.command == 'scan-video':
            return cmd_scan_video(args)
        else:
            print(f"Error: Unknown command '{args.command}'")
            return 1

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_monitor(args: argparse.Namespace) -> int:
    """Execute live monitoring command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 if the source could not be attached).
    """
    import time
    from dotenv import load_dotenv
    from src.recorder.detection import build_classifier
    from src.recorder.models import DetectionMode
    from src.recorder.session import SessionController, SessionHistory
    from src.recorder.utils import VideoSource, parse_source

    load_dotenv()

    source_stem = args.source if not args.source.isdigit() else f"device{args.source}"
    output_dir = get_output_path(source_stem, '_session', args.output)

    mode = DetectionMode(args.mode)
    history = SessionHistory()

    def on_state_change(old_state, new_state):
        print(f"  [{old_state.value:>17s}] -> {new_state.value}")

    controller = SessionController(
        mode=mode,
        classifier=build_classifier(mode, model=args.model),
        history=history,
        on_state_change=on_state_change
    )

    source = VideoSource(parse_source(args.source), realtime=not args.no_realtime)

    print("=" * 70)
    print(f"RUN RECORDER ({mode.value} mode)")
    print("=" * 70)
    print(f"\nSource: {args.source}")

    if not controller.start(source):
        print(f"\n✗ Capture error: {controller.error}", file=sys.stderr)
        return 1

    print("Monitoring... press Ctrl-C to stop\n")
    deadline = time.monotonic() + args.duration if args.duration else None
    was_rate_limited = False
    try:
        while not controller.wait_until_idle(1.0):
            if controller.is_rate_limited != was_rate_limited:
                was_rate_limited = controller.is_rate_limited
                print("  ⚠️  Rate limited, backing off" if was_rate_limited else "  ✓ Rate limit cleared")
            if deadline is not None and time.monotonic() >= deadline:
                break
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        controller.stop()

    summary = history.summary()
    print(f"\n✓ Session complete")
    print(f"  Attempts: {summary['total_attempts']}")
    for status, count in summary['status_counts'].items():
        print(f"    {status:14s} {count}")
    if summary['best_score'] is not None:
        print(f"  Best score: {summary['best_score']}")

    if len(history):
        index_path = history.export(output_dir)
        print(f"  Results saved to: {index_path}")

    return 0


def cmd_classify_frame(args: argparse.Namespace) -> int:
    """Execute single frame classification command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    import json
    from src.recorder.detection import build_classifier
    from src.recorder.models import DetectionMode
    from src.recorder.utils import load_image_rgb

    frame = load_image_rgb(args.image)
    classifier = build_classifier(DetectionMode(args.mode), model=args.model)
    result = classifier.classify(frame)

    output = {'image': args.image, 'mode': args.mode, 'result': result.to_dict()}
    if args.debug and args.mode == 'local':
        output['analysis'] = classifier.analyze(frame)

    print(json.dumps(output, indent=2))
    return 0


def cmd_scan_video(args: argparse.Namespace) -> int:
    """Execute offline video scan command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    from src.recorder.detection import LocalFrameClassifier, scan_video_for_game_over
    import json
    from datetime import datetime

    # Determine output path
    output_path = get_output_path(args.video, '_scan.json', args.output)
    ensure_output_dir(output_path)

    print(f"Scanning {args.video} for end-of-run screens...")

    events = scan_video_for_game_over(
        video_path=args.video,
        classifier=LocalFrameClassifier(),
        interval_seconds=args.interval,
        max_duration=args.max_duration,
        verbose=args.verbose
    )

    # Save results
    output_data = {
        'video_path': args.video,
        'scan_timestamp': datetime.now().isoformat(),
        'interval_seconds': args.interval,
        'summary': {
            'end_screens_detected': len(events)
        },
        'events': events
    }

    with open(output_path, 'w') as f:
        json.dump(output_data, f, indent=2)

    print(f"\n✓ Scan complete")
    print(f"  Found {len(events)} end-of-run screens")
    print(f"  Results saved to: {output_path}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
