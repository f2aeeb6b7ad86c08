"""Zeebe to Nomad trigger.

Subscribes to Zeebe job types and makes sure each workflow job results in
exactly one Nomad batch job:
- configuration loaded from the environment / `.env`
- structured logging
- idempotent Nomad job registration keyed by workflow metadata
"""

__version__ = "0.1.0"

from zeebe_nomad_trigger.config import BatchJobSettings, TriggerSettings

__all__ = ["__version__", "BatchJobSettings", "TriggerSettings"]
