"""
Run the Earth or solar system from the command line.

    python -m spacesim --duration 600 --with-moon
    python -m spacesim --solar-system --coplanar
"""

from __future__ import annotations

import argparse
import logging

from .core.config import IntegratorConfig, SimConfig
from .core.constants import RAD2DEG
from .environments.earth_system import create_earth_system
from .environments.solar_system import create_solar_system
from .simulator.output import ConsoleTextOutputWriter

logger = logging.getLogger("spacesim")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="spacesim", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--duration", type=float, default=600.0,
                        help="Simulated time to advance [s]")
    parser.add_argument("--time-step", type=float, default=0.02,
                        help="Numeric integration step [s]")
    parser.add_argument("--with-moon", action="store_true",
                        help="Add the Moon to the system")
    parser.add_argument("--solar-system", action="store_true",
                        help="Simulate the solar system instead of the Earth system")
    parser.add_argument("--coplanar", action="store_true",
                        help="Put every solar system orbit in the reference plane")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log engine lifecycle at DEBUG")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = SimConfig(integrator=IntegratorConfig(time_step=args.time_step))
    if args.solar_system:
        engine = create_solar_system(config, coplanar=args.coplanar,
                                     writer=ConsoleTextOutputWriter())
    else:
        engine = create_earth_system(config, with_moon=args.with_moon,
                                     writer=ConsoleTextOutputWriter())
    engine.advance(args.duration)

    print(f"t = {engine.total_time:.1f} s  mode = {engine.mode.name}")
    for obj in engine.objects:
        if obj.is_reference:
            continue
        latitude, longitude = obj.coordinates()
        print(f"  {obj.name:<24} alt = {obj.altitude() / 1e3:10.1f} km  "
              f"lat = {latitude * RAD2DEG:7.2f}  lon = {longitude * RAD2DEG:8.2f}  "
              f"impacted = {obj.impacted}")

    bad = engine.non_finite_objects()
    if bad:
        logger.error("Non-finite state: %s", ", ".join(o.name for o in bad))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
