"""
Domain models for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import Step, ConfigBlock, RunOutcome, Settings
"""

from provisioner.core.models.config_block import ConfigBlock
from provisioner.core.models.outcome import OutcomeStatus, RunOutcome, SkipReason
from provisioner.core.models.settings import PROFILES, RuntimeSpec, Settings
from provisioner.core.models.step import Category, SatisfactionState, Step

__all__ = [
    "PROFILES",
    # step.py
    "Category",
    # config_block.py
    "ConfigBlock",
    # outcome.py
    "OutcomeStatus",
    "RunOutcome",
    # settings.py
    "RuntimeSpec",
    "SatisfactionState",
    "Settings",
    "SkipReason",
    "Step",
]
