"""
Command line: list microphones, enroll a voice, listen and print who is speaking.

    python -m voiceid devices
    python -m voiceid enroll p1 Alice --seconds 3
    python -m voiceid listen --seconds 60
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
import time

from . import VoiceIdService
from .audio.device_utils import list_input_devices
from .enrollment.constants import ENROLLMENT_DURATION_SEC
from .errors import VoiceIdError
from .settings import FileSettingsRepo

logger = logging.getLogger(__name__)

DEFAULT_PROFILES_PATH = "voiceid_settings.json"


def _load_config(path: str | None) -> dict:
    if not path:
        return {}
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return data


def _cmd_devices(_args: argparse.Namespace, _service: VoiceIdService | None) -> int:
    for device in list_input_devices():
        marker = "*" if device.is_default else " "
        print(
            f"{marker} {device.id:3d}  {device.name}  "
            f"({device.channels} ch, {device.sample_rate:.0f} Hz)"
        )
    return 0


def _cmd_enroll(args: argparse.Namespace, service: VoiceIdService) -> int:
    existing = service.get_voice_profile(args.profile_id)
    if existing is None:
        service.create_voice_profile(args.profile_id, args.name or args.profile_id)
    elif args.name:
        existing.name = args.name

    done = threading.Event()

    def _on_progress(seconds: float) -> None:
        print(f"\rRecording... {seconds:4.1f}s / {args.seconds:.1f}s", end="", flush=True)
        if seconds >= args.seconds:
            done.set()

    service.start_enrollment(args.profile_id, _on_progress)
    try:
        done.wait()
    except KeyboardInterrupt:
        service.cancel_enrollment()
        print("\nCancelled")
        return 1
    print()
    profile = service.stop_enrollment(args.profile_id)
    service.save_profiles()
    features = profile.features
    print(
        f"Enrolled {profile.name}: pitch {features.avg_pitch:.1f} Hz, "
        f"energy {features.avg_energy:.3f}, centroid {features.spectral_centroid:.0f} Hz"
    )
    return 0


def _cmd_listen(args: argparse.Namespace, service: VoiceIdService) -> int:
    def _on_speaker_change(name: str) -> None:
        print(f"[{time.strftime('%H:%M:%S')}] {name}", flush=True)

    if not service.start_realtime_identification(_on_speaker_change):
        print("No enrolled voice profiles; run 'enroll' first.", file=sys.stderr)
        return 1
    try:
        if args.seconds > 0:
            time.sleep(args.seconds)
        else:
            while True:
                time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        service.stop_realtime_identification()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voiceid", description="On-device voice enrollment and speaker identification"
    )
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument(
        "--profiles",
        default=DEFAULT_PROFILES_PATH,
        help="Settings file holding saved voice profiles",
    )
    parser.add_argument("--device", type=int, help="Input device id (see 'devices')")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("devices", help="List microphones")

    enroll = sub.add_parser("enroll", help="Record a voice sample for a profile")
    enroll.add_argument("profile_id")
    enroll.add_argument("name", nargs="?")
    enroll.add_argument("--seconds", type=float, default=ENROLLMENT_DURATION_SEC)

    listen = sub.add_parser("listen", help="Print the speaker whenever it changes")
    listen.add_argument(
        "--seconds", type=float, default=0.0, help="Stop after this long (0 = until Ctrl+C)"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "devices":
            return _cmd_devices(args, None)
        config = _load_config(args.config)
        if args.device is not None:
            config.setdefault("audio", {})["device_id"] = args.device
        service = VoiceIdService.from_config(config, FileSettingsRepo(args.profiles))
        try:
            if args.command == "enroll":
                return _cmd_enroll(args, service)
            return _cmd_listen(args, service)
        finally:
            service.close()
    except VoiceIdError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
