"""
I/O Module: Fix sources, persistence sinks, ordered batch writer.

- Bounded writer queue (no unbounded RAM growth)
- Single worker preserves batch order
- Persistence failures are retried, counted and reported, never raised
  into fix ingestion
"""

from .fix_source import (
    FixSource,
    FixCallback,
    SubscriptionRequest,
    ManualFixSource,
    ReplayFixSource,
    load_fixes,
    write_fixes_csv,
)
from .point_sink import (
    PointSink,
    InMemoryPointSink,
    JsonlPointSink,
    load_points,
)
from .batch_writer import (
    BatchWriter,
    BatchWriterConfig,
)

__all__ = [
    'FixSource',
    'FixCallback',
    'SubscriptionRequest',
    'ManualFixSource',
    'ReplayFixSource',
    'load_fixes',
    'write_fixes_csv',
    'PointSink',
    'InMemoryPointSink',
    'JsonlPointSink',
    'load_points',
    'BatchWriter',
    'BatchWriterConfig',
]
