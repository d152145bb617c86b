"""
Replay tool configuration.
"""

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

# Replay defaults
REPLAY_CONFIG = {
    "profile": "BALANCED",            # TrackingProfile name
    "route_id": 1,
    "output": "replay_points.jsonl",  # JsonlPointSink target
}

# Engine tuning (EngineConfig keyword arguments)
ENGINE_CONFIG = {
    "buffer_flush_size": 50,
    "stillness_speed_mps": 0.5,
}

# Batch writer (BatchWriterConfig keyword arguments)
WRITER_CONFIG = {
    "max_attempts": 3,
    "retry_backoff_s": 0.5,
    "max_queue_batches": 1000,
}
