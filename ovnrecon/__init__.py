"""OVN Recon collector — logical topology snapshots from live OVN clusters."""

__version__ = "0.1.0"
