"""
Authentication Script - Capture and Verify

Opens the camera, captures a burst (no countdown), sends the last frame to
the verification backend and prints the normalized outcome.

Usage:
    # Against the backend configured in config.yaml
    python scripts/run_auth.py

    # Without a backend (canned responses)
    python scripts/run_auth.py --mock

    # Pick a camera and a response schema
    python scripts/run_auth.py --device 1 --schema single_match

    # Just list cameras
    python scripts/run_auth.py --list-devices
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import get_config
from core.errors import FaceIDError
from core.outcome import Route
from frontend.api_client import ConnectionMode
from frontend.components.device_manager import DeviceManager
from frontend.components.result_panel import ResultPanel
from frontend.orchestrator import WorkflowState, build_orchestrator


def print_view(panel: ResultPanel) -> None:
    view = panel.view
    if view is None:
        return
    print(view.headline)
    for line in view.details:
        print(f"  {line}")


async def run(args: argparse.Namespace) -> int:
    config = get_config()
    if args.schema:
        config["normalizer"]["response_schema"] = args.schema
    if args.threshold is not None:
        config["normalizer"]["match_threshold"] = args.threshold

    with DeviceManager(config.get("camera", {})) as devices:
        if args.list_devices:
            try:
                for device in devices.list_devices():
                    print(f"  [{device.id}] {device.label}")
            except FaceIDError as e:
                print(f"❌ {e.message}")
                return 1
            return 0

        orchestrator = build_orchestrator(Route.AUTHENTICATE, config, device_manager=devices)
        if args.mock:
            orchestrator.client.set_mode(ConnectionMode.MOCK)
        panel = ResultPanel(orchestrator)

        await orchestrator.start()
        if args.device is not None and orchestrator.state != WorkflowState.FAILED:
            await orchestrator.select_device(args.device)
        if orchestrator.state == WorkflowState.FAILED:
            print_view(panel)
            return 1

        print("Look at the camera...")
        snapshot = await orchestrator.capture()
        print_view(panel)

    return 0 if snapshot.workflow_state == WorkflowState.SUCCEEDED else 1


def main():
    parser = argparse.ArgumentParser(
        description="Face ID authentication",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--mock", action="store_true", help="Use the built-in mock backend")
    parser.add_argument("--device", type=str, default=None, help="Camera id (see --list-devices)")
    parser.add_argument("--list-devices", action="store_true", help="List cameras and exit")
    parser.add_argument(
        "--schema", choices=["coded", "single_match", "flat_list"], default=None,
        help="Backend response schema (default: from config.yaml)",
    )
    parser.add_argument(
        "--threshold", type=float, default=None,
        help="Minimum match score to accept (default: from config.yaml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print("=" * 60)
    print("Face ID - Authentication")
    print("=" * 60)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
