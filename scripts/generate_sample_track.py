"""
Generate a synthetic fix recording for trying the replay tool.

The track is a 1 Hz walk, a stop long enough to trigger auto-pause under the
BALANCED profile, then a second walk. A few outliers are injected: fixes with
poor reported accuracy and position jumps that imply an impossible speed.

    python scripts/generate_sample_track.py --out sample_data/track.csv
    python main.py sample_data/track.csv
"""

import argparse
from pathlib import Path
from typing import List

import numpy as np

from trip_core.localization.geodesy import destination_point
from trip_core.io.fix_source import write_fixes_csv
from trip_core.proto.fix import RawFix


def generate_track(
    walk_s: int = 300,
    stop_s: int = 180,
    speed_mps: float = 1.4,
    start_ms: int = 1_700_000_000_000,
    lat0: float = 22.3364,
    lon0: float = 114.2655,
    outlier_every: int = 45,
    seed: int = 42,
) -> List[RawFix]:
    """
    Build walk / stop / walk fixes at 1 Hz.

    Args:
        walk_s: Duration of each walking leg (seconds)
        stop_s: Duration of the stop (seconds)
        speed_mps: Walking speed
        start_ms: Timestamp of the first fix
        lat0, lon0: Start position
        outlier_every: Inject an outlier every N fixes (0 disables)
        seed: RNG seed

    Returns:
        Fixes in time order
    """
    rng = np.random.default_rng(seed)
    fixes: List[RawFix] = []

    lat, lon = lat0, lon0
    bearing = 45.0
    t_ms = start_ms

    legs = [(walk_s, speed_mps), (stop_s, 0.0), (walk_s, speed_mps)]
    for duration_s, leg_speed in legs:
        for _ in range(duration_s):
            if leg_speed > 0:
                bearing = (bearing + rng.normal(0.0, 3.0)) % 360.0
                lat, lon = destination_point(lat, lon, bearing, leg_speed)
                speed = max(0.0, leg_speed + rng.normal(0.0, 0.15))
            else:
                speed = abs(rng.normal(0.0, 0.05))

            # Position noise roughly matching the reported accuracy
            accuracy = float(rng.uniform(3.0, 12.0))
            noise_m = abs(rng.normal(0.0, accuracy / 3.0))
            noisy_lat, noisy_lon = destination_point(lat, lon, rng.uniform(0.0, 360.0), noise_m)

            fixes.append(RawFix(
                latitude=round(noisy_lat, 7),
                longitude=round(noisy_lon, 7),
                accuracy_m=round(accuracy, 1),
                speed_mps=round(speed, 2),
                bearing_deg=round(bearing, 1),
                time_ms=t_ms,
                altitude=round(float(rng.uniform(5.0, 15.0)), 1),
            ))
            t_ms += 1000

    if outlier_every > 0:
        for i in range(outlier_every, len(fixes), outlier_every):
            fix = fixes[i]
            if (i // outlier_every) % 2:
                # Poor accuracy, dropped by the quality gate
                fixes[i] = RawFix(
                    fix.latitude, fix.longitude, 250.0,
                    fix.speed_mps, fix.bearing_deg, fix.time_ms, fix.altitude,
                )
            else:
                # 2 km jump in one second, dropped by the plausibility gate
                jlat, jlon = destination_point(fix.latitude, fix.longitude, 90.0, 2000.0)
                fixes[i] = RawFix(
                    round(jlat, 7), round(jlon, 7), fix.accuracy_m,
                    fix.speed_mps, fix.bearing_deg, fix.time_ms, fix.altitude,
                )

    return fixes


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a synthetic fix recording (walk, stop, walk).")
    p.add_argument("--out", type=str, default="sample_data/track.csv", help="Output CSV path")
    p.add_argument("--walk", type=int, default=300, help="Seconds per walking leg")
    p.add_argument("--stop", type=int, default=180, help="Seconds standing still")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--no-outliers", action="store_true", help="Do not inject outliers")
    args = p.parse_args()

    fixes = generate_track(
        walk_s=args.walk,
        stop_s=args.stop,
        outlier_every=0 if args.no_outliers else 45,
        seed=args.seed,
    )

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    rows = write_fixes_csv(out_path, fixes)

    print(f"Generated: {out_path} (rows={rows}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
