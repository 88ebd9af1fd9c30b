"""Governance rules — permissions, proposal lifecycle, vote ledger and tally."""

from bandgov.governance.engine import ProposalEngine
from bandgov.governance.registry import BandRegistry
from bandgov.governance.state_machine import ProposalStateMachine
from bandgov.governance.tally import compute_tally

__all__ = ["ProposalEngine", "BandRegistry", "ProposalStateMachine", "compute_tally"]
