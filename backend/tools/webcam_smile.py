"""Simple CLI to run the webcam smile tracker.

Usage: python -m backend.tools.webcam_smile [--mode timed] [--capacity 50]
Press 'c' in the display window to calibrate with a neutral face, 'q' to quit.
"""
import argparse
import logging

from backend.processing_config import update_config, get_config
from backend.smile_engine.streamer import WebcamSmileStreamer


def main(argv=None):
    parser = argparse.ArgumentParser(description="Webcam smile tracker")
    parser.add_argument("--src", type=int, default=0, help="camera index")
    parser.add_argument("--mode", choices=["timed", "per-observation"], help="calibration mode")
    parser.add_argument("--capacity", type=int, help="samples per calibration burst")
    parser.add_argument("--duration", type=float, help="timed burst duration in seconds")
    parser.add_argument("--threshold", type=float, help="smile threshold (multiple of neutral width)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    updates = {
        "calibration_mode": args.mode,
        "calibration_capacity": args.capacity,
        "calibration_duration": args.duration,
        "smile_threshold": args.threshold,
    }
    try:
        update_config({k: v for k, v in updates.items() if v is not None})
    except ValueError as exc:
        parser.error(str(exc))

    streamer = WebcamSmileStreamer(src=args.src, width=640, height=480, fps=30, cfg=get_config())
    streamer.run_display(show_fps=True)


if __name__ == "__main__":
    main()
