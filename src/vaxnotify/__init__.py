"""vax-notify: snapshot-diff-and-notify monitor for vaccination capacity."""

__version__ = "0.1.0"
