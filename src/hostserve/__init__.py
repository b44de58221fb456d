"""hostserve - reconcile the host-local serve configuration document."""

__version__ = "0.1.0"
