"""
Touch Guard - face touch awareness
Watches the camera and raises an alert while a hand covers the face
"""

import argparse
import json
import logging
import sys
from typing import Any, Optional

from .config import AppConfig, get_config_manager
from .errors import ConfigurationError, InferenceError

logger = logging.getLogger(__name__)


def _parse_setting(assignment: str) -> tuple[str, Any]:
    if "=" not in assignment:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {assignment!r}")
    key, value = assignment.split("=", 1)
    try:
        return key.strip(), json.loads(value)
    except ValueError:
        return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="touch-guard", description="Touch Guard - face touch awareness")
    parser.add_argument("--camera", type=int, help="Camera index to use")
    parser.add_argument("--mock-camera", action="store_true", help="Use mock camera for CI/testing")
    parser.add_argument("--preview", action="store_true", help="Show the live feed window")
    parser.add_argument("--max-frames", type=int, help="Stop after this many camera frames")
    parser.add_argument("--no-notify", action="store_true", help="Log alerts instead of desktop notifications")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--show-config", action="store_true", help="Print the current settings and exit")
    parser.add_argument("--reset-config", action="store_true", help="Restore default settings and exit")
    parser.add_argument(
        "--set",
        dest="settings",
        action="append",
        type=_parse_setting,
        default=[],
        metavar="KEY=VALUE",
        help="Persist a tracking setting, e.g. --set fast_frame_rate=20",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    manager = get_config_manager()

    if args.reset_config:
        manager.reset()
        logger.info(f"Settings reset to defaults in {manager.config_file}")
        return 0

    if args.settings:
        try:
            manager.update_tracking(**dict(args.settings))
        except ConfigurationError as e:
            logger.error(f"Rejected settings update: {e}")
            return 2
        logger.info(f"Settings saved to {manager.config_file}")

    config = manager.load_config()
    if args.show_config:
        print(json.dumps(config.model_dump(), indent=2))
        return 0
    if args.settings:
        return 0

    return run(config, args)


def run(config: AppConfig, args: argparse.Namespace) -> int:
    """Wire camera, models, sinks and the pipeline together and run until stopped."""
    from .camera_utils import CameraFrameSource, MockCamera, initialize_camera
    from .inference import MediaPipeHandSegmenter, ThumbnailEmbedder
    from .notifier import DispatchingAlertSink, LoggingAlertSink, NotificationAlertSink
    from .pipeline import TouchPipeline
    from .runner import DecisionLoop

    segmenter = MediaPipeHandSegmenter(mask_size=config.tracking.mask_size)
    camera_config = config.camera
    if args.mock_camera:
        logger.info("Using mock camera for CI/testing environment")
        cap = MockCamera(camera_config.width, camera_config.height)
    else:
        device = args.camera if args.camera is not None else camera_config.device_id
        cap = initialize_camera(camera_index=device, width=camera_config.width, height=camera_config.height)
        if cap is None:
            logger.error("Could not open any camera")
            segmenter.close()
            return 1

    preview = None
    if args.preview:
        from .preview import PreviewWindow

        preview = PreviewWindow()

    sink = LoggingAlertSink() if args.no_notify else NotificationAlertSink(config.notifications)
    alert_sink = DispatchingAlertSink(sink)

    def report(error: InferenceError) -> None:
        logger.debug(f"Inference error reported: {error!r}")

    pipeline = TouchPipeline(
        config.tracking,
        embedder=ThumbnailEmbedder(),
        segmenter=segmenter,
        alert_sink=alert_sink,
        preview=preview,
        on_error=report,
    )
    loop = DecisionLoop(CameraFrameSource(cap, mirror=camera_config.mirror), pipeline, max_frames=args.max_frames)

    logger.info(
        f"Watching at {config.tracking.slow_frame_rate} Hz idle, {config.tracking.fast_frame_rate} Hz after movement"
    )
    try:
        if preview is not None:
            loop.run(on_tick=lambda: preview.render(pipeline.snapshot()))
        else:
            loop.run()
    finally:
        alert_sink.close()
        segmenter.close()
        if preview is not None:
            preview.close()

    snapshot = pipeline.snapshot()
    logger.info(
        f"Stopped after {snapshot.frames_seen} frames: {snapshot.frames_processed} analysed, "
        f"{snapshot.frames_dropped} gated, {snapshot.inference_errors} inference errors"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
