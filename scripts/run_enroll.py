"""
Enrollment Script - Capture and Register an Identity

Opens the camera, counts down, captures a burst and enrolls it together
with the identity fields given on the command line.

Usage:
    python scripts/run_enroll.py --first-name Jane --last-name Doe

    # All optional fields, every frame sent, no backend needed
    python scripts/run_enroll.py --first-name Jane --last-name Doe \\
        --email jane@example.com --phone +15550100 --age 34 --multi-frame --mock
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
from core.outcome import Route
from frontend.api_client import ConnectionMode
from frontend.components.device_manager import DeviceManager
from frontend.components.enrollment_form import IdentityForm
from frontend.components.result_panel import ResultPanel
from frontend.orchestrator import WorkflowState, build_orchestrator


async def run(args: argparse.Namespace, form: IdentityForm) -> int:
    config = get_config()
    if args.multi_frame:
        config["packaging"]["enrollment_mode"] = "multi_frame"

    with DeviceManager(config.get("camera", {})) as devices:
        orchestrator = build_orchestrator(Route.ENROLL, config, form=form, device_manager=devices)
        if args.mock:
            orchestrator.client.set_mode(ConnectionMode.MOCK)
        panel = ResultPanel(orchestrator)
        orchestrator.add_listener(
            lambda snapshot: print(f"  {snapshot.countdown}...") if snapshot.countdown else None
        )

        await orchestrator.start()
        if args.device is not None and orchestrator.state != WorkflowState.FAILED:
            await orchestrator.select_device(args.device)
        if orchestrator.state == WorkflowState.FAILED:
            print(panel.view.headline)
            return 1

        print("Get ready, capturing after the countdown:")
        snapshot = await orchestrator.capture()

        print(panel.view.headline)
        for line in panel.view.details:
            print(f"  {line}")

    return 0 if snapshot.workflow_state == WorkflowState.SUCCEEDED else 1


def main():
    parser = argparse.ArgumentParser(
        description="Face ID enrollment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument("--id", default="", help="Caller-assigned identifier")
    parser.add_argument("--age", type=int, default=0)
    parser.add_argument("--gender", default="")
    parser.add_argument("--email", default="")
    parser.add_argument("--phone", default="")
    parser.add_argument("--multi-frame", action="store_true", help="Send every captured frame")
    parser.add_argument("--mock", action="store_true", help="Use the built-in mock backend")
    parser.add_argument("--device", type=str, default=None, help="Camera id")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    form = IdentityForm(
        id=args.id,
        firstName=args.first_name,
        lastName=args.last_name,
        age=args.age,
        gender=args.gender,
        email=args.email,
        phone=args.phone,
    )
    if not form.is_valid:
        for field_name, message in form.errors.items():
            print(f"❌ {field_name}: {message}")
        sys.exit(2)

    print("=" * 60)
    print(f"Face ID - Enrollment of {args.first_name} {args.last_name}")
    print("=" * 60)

    sys.exit(asyncio.run(run(args, form)))


if __name__ == "__main__":
    main()
