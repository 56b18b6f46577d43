"""Output adapters - status file, health/metrics HTTP server, console formatting."""

from .status_writer import StatusWriter, StatusReader, DEFAULT_STATUS_PATH
from .health_server import HealthServer
from .formatting import render_summary

__all__ = ['StatusWriter', 'StatusReader', 'DEFAULT_STATUS_PATH', 'HealthServer', 'render_summary']
