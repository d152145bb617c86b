"""
Track replay tool.

Feeds a recorded fix file (CSV or JSONL) through the tracking engine as if
it came from a live source, writes accepted points to a JSONL file, and
prints the live metrics, the finalized route summary and the fix accounting
(rejections by reason, session events, persistence) for this replay.

    python main.py recording.csv --profile high_accuracy --output points.jsonl
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Optional

import config
from trip_core.clock import ReplayClock
from trip_core.errors import ConfigurationError
from trip_core.io import ReplayFixSource, JsonlPointSink, BatchWriterConfig, load_points
from trip_core.metrics import get_metrics
from trip_core.proto import MetricsSnapshot, TrackingProfile, TrackingState
from trip_core.domain import (
    TrackingEngine,
    EngineConfig,
    RouteSummary,
    summarize_points,
    format_distance,
    format_speed,
    format_duration,
)

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


class TrackReplayer:
    """Drives one replay session end to end."""

    def __init__(self, source: ReplayFixSource, profile: TrackingProfile,
                 route_id: int, output: Path):
        self.source = source
        self.profile = profile
        self.route_id = route_id
        self.output = output
        self.state_changes = []
        self.baseline = None

        self.clock = ReplayClock()
        self.engine = TrackingEngine.with_sink(
            source,
            JsonlPointSink(output),
            config=EngineConfig(**config.ENGINE_CONFIG),
            writer_config=BatchWriterConfig(**config.WRITER_CONFIG),
            clock=self.clock,
        )
        self.engine.state_stream.subscribe(self._on_state)

    def _on_state(self, state):
        self.state_changes.append((self.clock.now(), state))
        logger.debug(f"State -> {state.name}")

    def run(self) -> MetricsSnapshot:
        """Replay every fix and return the final live metrics."""
        if self.output.exists():
            logger.info(f"Replacing existing output {self.output}")
            self.output.unlink()

        self.baseline = get_metrics().snapshot()

        if len(self.source):
            self.clock.set(self.source.fixes[0].time_ms)

        self.engine.start(self.route_id, self.profile)
        self.source.replay(self.clock)
        final = self.engine.stop()
        self.engine.close()
        return final

    def summarize(self) -> Optional[RouteSummary]:
        if not self.output.exists():
            return None
        return summarize_points(load_points(self.output))


def print_report(final: MetricsSnapshot, summary: Optional[RouteSummary], replayer: TrackReplayer):
    """Print replay results."""
    print("\n" + "=" * 60)
    print(f"  REPLAY: route {replayer.route_id}, profile {replayer.profile.name}")
    print("=" * 60)
    print(f"Fixes delivered : {replayer.source.delivered} "
          f"(skipped while paused: {replayer.source.skipped})")
    print(f"Accepted points : {final.point_count}")
    print(f"Distance        : {format_distance(final.total_distance_m)}")
    print(f"Elapsed         : {format_duration(final.elapsed_ms)}")
    print(f"Avg / max speed : {format_speed(final.avg_speed_mps)} / "
          f"{format_speed(final.max_speed_mps)}")

    auto_pauses = sum(1 for _, s in replayer.state_changes if s is TrackingState.AUTO_PAUSED)
    print(f"Auto-pauses     : {auto_pauses}")

    if summary is not None:
        print("\nPersisted route summary:")
        print(f"  points   : {summary.point_count}")
        print(f"  distance : {format_distance(summary.total_distance_m)}")
        print(f"  duration : {format_duration(summary.duration_ms)}")
        print(f"  avg/max  : {format_speed(summary.avg_speed_mps)} / "
              f"{format_speed(summary.max_speed_mps)}")
    else:
        print("\nNo points persisted.")
    print("=" * 60)


def main(argv=None) -> int:
    """Entry point."""
    parser = argparse.ArgumentParser(description='Replay a GPS fix recording through the tracking engine')
    parser.add_argument('recording', type=str,
                        help='CSV or JSONL fix recording')
    parser.add_argument('--profile', '-P', type=str, default=None,
                        help='Tracking profile (HIGH_ACCURACY, BALANCED, LOW_POWER)')
    parser.add_argument('--route-id', '-r', type=int, default=None,
                        help='Route id stamped on persisted points')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='JSONL file for accepted points')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        profile = TrackingProfile.from_name(args.profile or config.REPLAY_CONFIG["profile"])
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    try:
        source = ReplayFixSource.from_file(args.recording)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read recording {args.recording}: {e}")
        return 2

    route_id = args.route_id if args.route_id is not None else config.REPLAY_CONFIG["route_id"]
    output = Path(args.output or config.REPLAY_CONFIG["output"])

    replayer = TrackReplayer(source, profile, route_id, output)
    final = replayer.run()
    print_report(final, replayer.summarize(), replayer)

    get_metrics().print_summary(since=replayer.baseline)

    return 0


if __name__ == "__main__":
    sys.exit(main())
