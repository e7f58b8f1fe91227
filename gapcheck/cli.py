"""
Command-line entry point for the gap inspection system.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import cv2

from .config.settings_manager import SettingsManager
from .controller.app_controller import ApplicationController
from .utils.logger import setup_logging
from .vision.image_source import ImageFileSource, list_camera_devices
from .vision.inspector import GapInspector, InspectionOutcome

logger = logging.getLogger(__name__)


def _settings_manager(args) -> SettingsManager:
    if args.settings:
        return SettingsManager(settings_file=Path(args.settings),
                               models_dir=Path(args.settings).parent / "models")
    return SettingsManager()


def cmd_run(args) -> int:
    """Live camera inspection until interrupted."""
    controller = ApplicationController(settings_manager=_settings_manager(args))
    if args.model and not controller.select_model(args.model):
        return 2
    if args.camera is not None:
        controller.settings.camera_index = args.camera
    if args.resolution:
        controller.settings.camera_resolution = args.resolution

    if not controller.start_camera():
        print(f"Failed to open camera {controller.settings.camera_index}", file=sys.stderr)
        return 1

    controller.camera.add_fps_callback(lambda fps: logger.debug(f"Camera FPS: {fps:.1f}"))

    def on_result(outcome: InspectionOutcome):
        gaps = ", ".join(f"{m.smoothed_gap:.1f}" for m in outcome.measurements)
        logger.info(f"{outcome.verdict} gaps=[{gaps}] px ({outcome.processing_time_ms:.0f} ms)")

    controller.driver.add_result_callback(on_result)
    if not controller.start_inspection():
        print("No measurement lines configured", file=sys.stderr)
        controller.shutdown()
        return 2

    deadline = time.monotonic() + args.duration if args.duration else None
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.2)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        stats = controller.driver.statistics
        controller.shutdown()

    rate = f"{stats.ok_rate:.1f}%" if stats.ok_rate is not None else "--"
    print(f"Total: {stats.total} | OK: {stats.ok} | NG: {stats.ng} | OK rate: {rate}")
    return 0


def cmd_inspect(args) -> int:
    """One-shot inspection of image files."""
    manager = _settings_manager(args)
    settings = manager.load()
    if args.model:
        model = manager.load_model(args.model)
        if model is None:
            print(f"Model not found: {args.model}", file=sys.stderr)
            return 2
        settings.copy_inspection_parameters_from(model)

    save_dir = Path(args.save_annotated) if args.save_annotated else None
    if save_dir:
        save_dir.mkdir(parents=True, exist_ok=True)

    inspector = GapInspector(render_diagnostics=save_dir is not None)
    all_ok = True
    for path in args.images:
        with ImageFileSource(path) as source:
            # Files are unrelated parts; no smoothing across them
            inspector.reset_smoothing()
            outcome = inspector.inspect_from_source(source, settings.inspection)

        print(f"\n{path}\n{outcome.get_summary()}")
        all_ok = all_ok and outcome.is_ok

        if save_dir and outcome.annotated_frame is not None:
            output_path = save_dir / f"{Path(path).stem}_result.jpg"
            cv2.imwrite(str(output_path), outcome.annotated_frame)

    return 0 if all_ok else 3


def cmd_models(args) -> int:
    for name in _settings_manager(args).get_model_names():
        print(name)
    return 0


def cmd_devices(args) -> int:
    for index in list_camera_devices(args.max_index):
        print(f"Camera {index}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gapcheck", description="Connector gap inspection")
    parser.add_argument("--settings", help="Settings file (models stored beside it)")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--no-log-file", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Live camera inspection")
    run.add_argument("--camera", type=int, help="Camera index override")
    run.add_argument("--resolution", help="'Auto' or WIDTHxHEIGHT")
    run.add_argument("--model", help="Stored model to activate")
    run.add_argument("--duration", type=float, help="Stop after N seconds")
    run.set_defaults(func=cmd_run)

    inspect = sub.add_parser("inspect", help="Inspect image files")
    inspect.add_argument("images", nargs="+")
    inspect.add_argument("--model", help="Stored model to use")
    inspect.add_argument("--save-annotated", metavar="DIR")
    inspect.set_defaults(func=cmd_inspect)

    models = sub.add_parser("models", help="List stored models")
    models.set_defaults(func=cmd_models)

    devices = sub.add_parser("devices", help="List openable cameras")
    devices.add_argument("--max-index", type=int, default=5)
    devices.set_defaults(func=cmd_devices)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO,
                  log_to_file=not args.no_log_file)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
