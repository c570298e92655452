"""Release gating and packaging pipeline for the gen_inds crate."""

__version__ = "0.1.0"
