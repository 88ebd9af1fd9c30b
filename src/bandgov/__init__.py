"""Band governance — proposals, review, voting and an auditable activity log."""

__version__ = "0.1.0"
