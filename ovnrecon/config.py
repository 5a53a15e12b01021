"""OVN Recon configuration — constants, defaults, environment parsing.

All tunables live here so the probe pipeline stays free of magic values.
Override at runtime via environment variables or CLI flags.
"""

from __future__ import annotations

import logging
import os

# ---------------------------------------------------------------------------
# Snapshot schema
# ---------------------------------------------------------------------------

SCHEMA_VERSION: str = "v1alpha1"

# ---------------------------------------------------------------------------
# OVN probe commands (only the trailing table name varies)
# ---------------------------------------------------------------------------

OVN_NBCTL_LIST: tuple[str, ...] = ("ovn-nbctl", "--format=json", "list")

LOGICAL_ROUTER_COMMAND: tuple[str, ...] = OVN_NBCTL_LIST + ("Logical_Router",)
LOGICAL_ROUTER_PORT_COMMAND: tuple[str, ...] = OVN_NBCTL_LIST + ("Logical_Router_Port",)
LOGICAL_SWITCH_COMMAND: tuple[str, ...] = OVN_NBCTL_LIST + ("Logical_Switch",)
LOGICAL_SWITCH_PORT_COMMAND: tuple[str, ...] = OVN_NBCTL_LIST + ("Logical_Switch_Port",)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_csv(raw: str) -> list[str]:
    """Split a comma-separated value, dropping blanks and duplicates."""
    values: list[str] = []
    for part in raw.split(","):
        value = part.strip()
        if not value or value in values:
            continue
        values.append(value)
    return values


def parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "t", "true", "y", "yes", "on"}


def env(key: str, default: str) -> str:
    """Return the environment value for *key*, or *default* when unset or blank."""
    value = os.getenv(key, "").strip()
    return value or default


def parse_log_level(raw: str) -> int:
    """Map a level name to a :mod:`logging` level; unknown names mean INFO."""
    return {
        "error": logging.ERROR,
        "warn": logging.WARNING,
        "warning": logging.WARNING,
        "debug": logging.DEBUG,
        # logging has no trace level
        "trace": logging.DEBUG,
    }.get(raw.strip().lower(), logging.INFO)


# ---------------------------------------------------------------------------
# Server defaults
# ---------------------------------------------------------------------------

PORT: int = int(env("PORT", "8090"))
SNAPSHOT_DIR: str = env("SNAPSHOT_DIR", "./fixtures/snapshots")
SNAPSHOT_FALLBACK_FILE: str = env("SNAPSHOT_FALLBACK_FILE", "default.json")

# ---------------------------------------------------------------------------
# Collector defaults
# ---------------------------------------------------------------------------

TARGET_NAMESPACES: list[str] = parse_csv(
    env("COLLECTOR_TARGET_NAMESPACES", "openshift-ovn-kubernetes,openshift-frr-k8s")
)
LOG_LEVEL: int = parse_log_level(env("COLLECTOR_LOG_LEVEL", "info"))
INCLUDE_PROBE_OUTPUT: bool = parse_bool(env("COLLECTOR_INCLUDE_PROBE_OUTPUT", "false"))
PROBE_TIMEOUT_SECONDS: float = float(env("COLLECTOR_PROBE_TIMEOUT", "30"))

# Poll interval (seconds) while streaming exec output; bounds cancellation latency.
EXEC_POLL_SECONDS: float = 0.5

DEFAULT_KUBECONFIG: str = os.path.expanduser("~/.kube/config")
