"""Kubernetes exec runner — executes OVN probe commands inside running pods.

For a requested node, every container of every running pod in the target
namespaces is a candidate.  Pods scheduled on the node are tried first, the
rest after, and execution stops at the first success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence

from ovnrecon import config
from ovnrecon.probe.deadline import Deadline
from ovnrecon.probe.errors import (
    ConfigurationError,
    ExecutionError,
    ProbeCancelledError,
    ProbeError,
    TargetResolutionError,
)

logger = logging.getLogger("ovnrecon.runner")


class Runner(Protocol):
    """Executes OVN commands against one implicit target."""

    def run(self, command: Sequence[str], deadline: Optional[Deadline] = None) -> str:
        ...


class RunnerFactory(Protocol):
    """Resolves a :class:`Runner` for a specific node."""

    def runner_for_node(self, node_name: str, deadline: Optional[Deadline] = None) -> Runner:
        ...


@dataclass(frozen=True)
class ExecTarget:
    namespace: str
    pod_name: str
    container_name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.pod_name}/{self.container_name}"


class _AttemptFailed(Exception):
    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


# ---------------------------------------------------------------------------
# Client construction
# ---------------------------------------------------------------------------

def load_core_v1(kubeconfig: Optional[str] = None) -> Any:
    """Build a ``CoreV1Api``, trying kubeconfig first and in-cluster second.

    Raises:
        ConfigurationError: If neither configuration source can be loaded.
    """
    from kubernetes import client, config as k8s_config

    try:
        k8s_config.load_kube_config(config_file=kubeconfig)
        logger.info("Loaded kubeconfig successfully")
    except Exception as e1:
        logger.debug("Failed to load kubeconfig: %s", e1)
        try:
            k8s_config.load_incluster_config()
            logger.info("Loaded in-cluster config successfully")
        except Exception as e2:
            raise ConfigurationError(
                f"Unable to configure Kubernetes client. "
                f"kubeconfig error: {e1}. in-cluster error: {e2}"
            ) from e2
    return client.CoreV1Api()


def dedicated_exec_api(core_v1: Any) -> Any:
    """Return a ``CoreV1Api`` on a fresh ``ApiClient`` sharing *core_v1*'s configuration.

    ``kubernetes.stream.stream`` swaps ``request`` on the client it is given
    while the exec connects, so exec streams never run on the shared client.
    """
    from kubernetes import client

    return client.CoreV1Api(api_client=client.ApiClient(core_v1.api_client.configuration))


def _default_stream(*args: Any, **kwargs: Any) -> Any:
    from kubernetes.stream import stream

    return stream(*args, **kwargs)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

class KubeExecRunnerFactory:
    """Creates node-scoped runners that exec probe commands in-cluster."""

    def __init__(
        self,
        core_v1: Any,
        target_namespaces: Sequence[str],
        logger: Optional[logging.Logger] = None,
        stream_fn: Callable[..., Any] = _default_stream,
        exec_api_fn: Callable[[Any], Any] = dedicated_exec_api,
    ) -> None:
        self.core_v1 = core_v1
        self.target_namespaces = list(target_namespaces)
        self.logger = logger or logging.getLogger("ovnrecon.runner")
        self.stream_fn = stream_fn
        self.exec_api_fn = exec_api_fn

    def runner_for_node(self, node_name: str, deadline: Optional[Deadline] = None) -> "KubeExecRunner":
        """Return a runner preferring pods on *node_name*.

        Candidate targets are resolved once here so that a node with no
        viable endpoint fails the request before any probe runs.
        """
        if self.core_v1 is None:
            raise ConfigurationError("kubernetes client is not configured")
        if not node_name or not node_name.strip():
            raise ConfigurationError("node name is required")

        runner = KubeExecRunner(
            core_v1=self.core_v1,
            target_namespaces=list(self.target_namespaces),
            node_name=node_name,
            logger=self.logger,
            stream_fn=self.stream_fn,
            exec_api_fn=self.exec_api_fn,
        )
        runner.resolve_targets(deadline)
        return runner


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class KubeExecRunner:
    """Executes OVN commands inside a selected pod/container."""

    def __init__(
        self,
        core_v1: Any,
        target_namespaces: list[str],
        node_name: str,
        logger: Optional[logging.Logger] = None,
        stream_fn: Callable[..., Any] = _default_stream,
        exec_api_fn: Callable[[Any], Any] = dedicated_exec_api,
    ) -> None:
        self.core_v1 = core_v1
        self.target_namespaces = target_namespaces
        self.node_name = node_name
        self.logger = logger or logging.getLogger("ovnrecon.runner")
        self.stream_fn = stream_fn
        # Builds the client each exec streams on; never the shared listing client.
        self.exec_api_fn = exec_api_fn

    def run(self, command: Sequence[str], deadline: Optional[Deadline] = None) -> str:
        """Execute *command* on the first target that succeeds and return stdout.

        Raises:
            ExecutionError: Every target failed; carries the last stderr.
            TargetResolutionError: No running pod in any target namespace.
            ProbeCancelledError: The deadline fired; remaining targets are skipped.
        """
        if not command:
            raise ProbeError("empty command")
        command = list(command)
        joined = " ".join(command)

        targets = self.resolve_targets(deadline)

        last_exc: Optional[_AttemptFailed] = None
        last_target: Optional[ExecTarget] = None
        for target in targets:
            if deadline is not None:
                deadline.check()
            try:
                stdout = self._exec_in_pod(target, command, deadline)
            except _AttemptFailed as exc:
                last_exc, last_target = exc, target
                self.logger.debug(
                    "probe command execution attempt failed node=%s namespace=%s pod=%s "
                    "container=%s command=%r error=%s stderr=%r",
                    self.node_name, target.namespace, target.pod_name,
                    target.container_name, joined, exc, exc.stderr.strip(),
                )
                continue

            self.logger.debug(
                "probe command executed successfully node=%s namespace=%s pod=%s "
                "container=%s command=%r stdout_bytes=%d",
                self.node_name, target.namespace, target.pod_name,
                target.container_name, joined, len(stdout),
            )
            return stdout

        if last_exc is None:
            raise ExecutionError("no exec targets were resolved")
        stderr = last_exc.stderr.strip()
        raise ExecutionError(
            f"probe exec failed on all targets: {last_exc}; stderr={stderr}",
            stderr=stderr,
            target=last_target,
        ) from last_exc

    def resolve_targets(self, deadline: Optional[Deadline] = None) -> list[ExecTarget]:
        """List candidate targets: pods on this node first, then everything else."""
        preferred: list[ExecTarget] = []
        fallback: list[ExecTarget] = []

        for namespace in self.target_namespaces:
            namespace = namespace.strip()
            if not namespace:
                continue
            if deadline is not None:
                deadline.check()

            kwargs: dict[str, Any] = {"field_selector": "status.phase=Running"}
            if deadline is not None and deadline.remaining() is not None:
                kwargs["_request_timeout"] = deadline.remaining()
            try:
                pod_list = self.core_v1.list_namespaced_pod(namespace, **kwargs)
            except Exception as exc:
                if deadline is not None:
                    deadline.check()
                self.logger.warning(
                    "failed to list pods for probe namespace node=%s namespace=%s error=%s",
                    self.node_name, namespace, exc,
                )
                continue

            for pod in pod_list.items or []:
                targets = _pod_exec_targets(namespace, pod)
                if not targets:
                    continue
                if (pod.spec.node_name or "") == self.node_name:
                    preferred.extend(targets)
                else:
                    fallback.extend(targets)

        if not preferred and not fallback:
            raise TargetResolutionError(
                f"no running pods available for probe in namespaces "
                f"\"{','.join(self.target_namespaces)}\" on node \"{self.node_name}\""
            )
        return preferred + fallback

    def _exec_in_pod(
        self,
        target: ExecTarget,
        command: list[str],
        deadline: Optional[Deadline],
    ) -> str:
        """Stream one exec to completion, returning stdout."""
        try:
            exec_api = self.exec_api_fn(self.core_v1)
            resp = self.stream_fn(
                exec_api.connect_get_namespaced_pod_exec,
                target.pod_name,
                target.namespace,
                container=target.container_name,
                command=command,
                stderr=True,
                stdin=False,
                stdout=True,
                tty=False,
                _preload_content=False,
            )
        except Exception as exc:
            raise _AttemptFailed(f"open exec stream: {exc}") from exc

        stdout: list[str] = []
        stderr: list[str] = []
        try:
            while resp.is_open():
                if deadline is not None:
                    deadline.check()
                resp.update(timeout=config.EXEC_POLL_SECONDS)
                if resp.peek_stdout():
                    stdout.append(resp.read_stdout())
                if resp.peek_stderr():
                    stderr.append(resp.read_stderr())
        except ProbeCancelledError:
            raise
        except Exception as exc:
            raise _AttemptFailed(f"exec stream: {exc}", "".join(stderr)) from exc
        finally:
            resp.close()

        try:
            returncode = resp.returncode
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise _AttemptFailed("exec stream closed without exit status", "".join(stderr)) from exc
        if returncode:
            raise _AttemptFailed(
                f"command terminated with exit code {returncode}", "".join(stderr)
            )
        return "".join(stdout)


def _pod_exec_targets(namespace: str, pod: Any) -> list[ExecTarget]:
    return [
        ExecTarget(namespace=namespace, pod_name=pod.metadata.name, container_name=container.name)
        for container in (pod.spec.containers or [])
    ]
