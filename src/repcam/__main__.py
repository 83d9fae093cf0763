"""
RepCam CLI entry point.

Runs live exercise classification on a camera or video file.

Usage:
    python -m repcam --model model.onnx              # Default camera
    python -m repcam --model model.onnx --camera 1   # Camera index 1
    python -m repcam --model model.onnx --video clip.mp4
    python -m repcam --help                          # Show help
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from .core.camera import Camera
from .core.config import Config
from .core.errors import RepCamError
from .core.pipeline import FrameOutcome, FramePipeline
from .core.settings import PipelineSettings


def setup_logging(config: Config) -> None:
    """Configure logging based on config."""
    log_config = config["logging"]
    level = getattr(logging, log_config.get("level", "INFO"))

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = log_config.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        handlers=handlers,
    )


def run_live_classification(
    config: Config, model_bytes: bytes, max_frames: int | None = None
) -> int:
    """
    Push camera frames through the pipeline until the source ends or Ctrl-C.

    Returns:
        Process exit code
    """
    logger = logging.getLogger(__name__)
    settings = PipelineSettings.from_config(config)

    last_text = None

    def on_result(outcome: FrameOutcome) -> None:
        nonlocal last_text
        text = outcome.display_text
        if not outcome.ok:
            logger.warning(f"Frame {outcome.frame_id}: {text}")
        elif text != last_text:
            logger.info(f"{text} ({outcome.processing_time_ms:.1f}ms)")
        last_text = text

    pipeline = FramePipeline(settings, on_result=on_result)
    try:
        pipeline.start(model_bytes)
    except RepCamError as e:
        logger.error(f"Failed to start pipeline: {e}")
        return 1

    camera = Camera(config["camera"], encoding=settings.color_encoding)
    if not camera.open():
        logger.error("Failed to open camera. Check connection and try again.")
        pipeline.stop()
        return 1

    frames_read = 0
    fps_time = time.time()
    try:
        while max_frames is None or frames_read < max_frames:
            frame = camera.read_frame()
            if frame is None:
                if isinstance(camera.source, str):
                    logger.info("End of video")
                    break
                continue
            frames_read += 1
            pipeline.submit(frame)

            if time.time() - fps_time >= 5.0:
                stats = pipeline.stats()
                logger.debug(
                    f"Frames read={frames_read}, processed={stats['processed']}, "
                    f"dropped={stats['dropped']}"
                )
                fps_time = time.time()

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        camera.release()
        pipeline.stop()
        logger.info("RepCam stopped")

    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="RepCam - Real-time Exercise Classification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m repcam --model model.onnx              Classify the default camera
    python -m repcam --model model.onnx --camera 1   Use camera index 1
    python -m repcam --model model.onnx --video a.mp4
        """,
    )

    parser.add_argument("--model", type=str, required=True, help="Path to the ONNX model")
    parser.add_argument("--camera", type=int, help="Camera index to use (overrides config)")
    parser.add_argument("--video", type=str, help="Video file to classify instead of a camera")
    parser.add_argument("--config", type=str, help="Path to configuration directory")
    parser.add_argument("--max-frames", type=int, help="Stop after reading this many frames")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    if args.debug:
        os.environ["REPCAM_ENV"] = "development"

    config_dir = Path(args.config) if args.config else None
    config = Config(config_dir)

    # Apply command-line overrides
    if args.camera is not None:
        os.environ["REPCAM_CAMERA_SOURCE"] = str(args.camera)
        config.reload()
    if args.video is not None:
        config["camera"]["source"] = args.video

    setup_logging(config)

    logger = logging.getLogger(__name__)
    logger.info("RepCam starting...")
    logger.info(f"Environment: {config.env}")

    model_path = Path(args.model)
    if not model_path.is_file():
        logger.error(f"Model file not found: {model_path}")
        sys.exit(1)

    sys.exit(run_live_classification(config, model_path.read_bytes(), args.max_frames))


if __name__ == "__main__":
    main()
