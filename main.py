"""
main.py: console launcher for the Jisr status engine.

Usage:
    python main.py --lat 21.07 --lon 40.31
    python main.py --deny

Loads deployment settings from .env, wires a StatusCoordinator around a
fixed-position location provider, fetches the weather once and prints the
published state together with the map and sample booking deep links.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

from jisr_status import (
    ConfigurationError,
    Coordinate,
    IntentKind,
    StatusCoordinator,
    load_settings,
)

ROOT = Path(__file__).parent


class FixedLocationProvider:
    """Answers the permission prompt and reports one fixed position."""

    def __init__(self, position: Coordinate | None, grant: bool) -> None:
        self.position = position
        self.grant = grant
        self.manager = None

    def request_authorization(self) -> None:
        # Deliver the decision after construction, like a real prompt would
        asyncio.get_running_loop().call_soon(self._decide)

    def start_updates(self) -> None:
        asyncio.get_running_loop().call_soon(self._report)

    def stop_updates(self) -> None:
        pass

    def request_single_fix(self) -> None:
        asyncio.get_running_loop().call_soon(self._report)

    def _decide(self) -> None:
        self.manager.authorization_changed(self.grant)

    def _report(self) -> None:
        if self.position is None:
            self.manager.location_failed("no position given on the command line")
        else:
            self.manager.location_updated(self.position)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Jisr status engine demo")
    parser.add_argument("--lat", type=float, help="current latitude")
    parser.add_argument("--lon", type=float, help="current longitude")
    parser.add_argument("--deny", action="store_true", help="refuse location permission")
    parser.add_argument("--env-file", default=str(ROOT / ".env"))
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.env_file)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logging.getLogger().setLevel(settings.log_level)

    position = None
    if args.lat is not None and args.lon is not None:
        position = Coordinate(latitude=args.lat, longitude=args.lon)

    provider = FixedLocationProvider(position, grant=not args.deny)
    coordinator = StatusCoordinator.from_settings(settings, provider)
    provider.manager = coordinator.proximity

    try:
        await coordinator.refresh_weather()
        # Let the permission decision and first fix land
        await asyncio.sleep(0.05)

        snapshot = coordinator.weather_snapshot
        state = coordinator.proximity_state
        print(f"╔═ {settings.place_name}")
        if snapshot is not None:
            print(f"║ Weather   {snapshot.temperature_celsius:.1f}°C  "
                  f"{snapshot.condition.value} [{snapshot.icon}]")
        else:
            print(f"║ Weather   {coordinator.weather_error or 'unavailable'}")
        print(f"║ Location  {state.authorization.value}: {state.display_text}")
        print(f"║ Map       {coordinator.map_uri()}")

        tomorrow = (datetime.now() + timedelta(days=1)).replace(
            hour=18, minute=0, second=0, microsecond=0
        )
        booking = coordinator.compose(
            IntentKind.BOOKING,
            {"name": "Guest", "party_size": "2", "timestamp_iso": tomorrow.isoformat()},
        )
        print(f"║ Booking   {booking}")
        print("╚═")
    finally:
        coordinator.close()
    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(_run(_parse_args(sys.argv[1:]))))


if __name__ == "__main__":
    main()
