"""Sample ingestion, write queues, alert evaluation, muting and routing for a monitoring server."""

__version__ = "0.1.0"