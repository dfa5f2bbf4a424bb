from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import threading
from typing import Any, Callable

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from .outcomes import ContainerSlot, SlotState, slot_state
from .settings import Settings


# Anything the docker SDK can raise for a single call: daemon errors and
# transport errors (socket missing, read timeout).
_SDK_ERRORS = (DockerException, RequestException)

COMPOSE_CANDIDATES: tuple[tuple[str, ...], ...] = (
    ("podman-compose",),
    ("docker-compose",),
    ("docker", "compose"),
)


class RuntimeOpError(Exception):
    """A single container-runtime or compose call failed."""


class ContainerRuntime:
    """Control surface over the local container runtime.

    Inspect/pull/remove go through the docker SDK (Docker, or Podman's
    docker-compatible socket). Creating and starting services is delegated
    to the compose tool so the compose file stays the source of truth.
    """

    def __init__(
        self,
        cfg: Settings,
        client: docker.DockerClient | None = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.cfg = cfg
        self._client_obj = client
        self._run = run
        self._which = which
        self._compose: list[str] | None = None
        self._client_lock = threading.Lock()

    def _client(self) -> docker.DockerClient:
        # Pool threads share one client.
        with self._client_lock:
            if self._client_obj is None:
                try:
                    if self.cfg.docker_host:
                        self._client_obj = docker.DockerClient(
                            base_url=self.cfg.docker_host, timeout=self.cfg.runtime_timeout_s
                        )
                    else:
                        self._client_obj = docker.from_env(timeout=self.cfg.runtime_timeout_s)
                except _SDK_ERRORS as e:
                    raise RuntimeOpError(f"Container runtime unavailable: {e}") from e
            return self._client_obj

    def close(self) -> None:
        with self._client_lock:
            if self._client_obj is not None:
                self._client_obj.close()
                self._client_obj = None

    def available(self) -> bool:
        try:
            self._client().ping()
            return True
        except (RuntimeOpError, *_SDK_ERRORS):
            return False

    # ------------------------------------------------------------------
    # Containers and images
    # ------------------------------------------------------------------

    def inspect(self, container_name: str) -> ContainerSlot:
        try:
            cont = self._client().containers.get(container_name)
        except NotFound:
            return ContainerSlot(name=container_name, state=SlotState.ABSENT)
        except _SDK_ERRORS as e:
            raise RuntimeOpError(f"inspect {container_name} failed: {e}") from e

        attrs: dict[str, Any] = getattr(cont, "attrs", None) or {}
        state = attrs.get("State") or {}
        status = state.get("Status") or getattr(cont, "status", "") or "unknown"
        health = (state.get("Health") or {}).get("Status")
        return ContainerSlot(
            name=container_name,
            state=slot_state(status),
            status=status,
            image_id=attrs.get("Image"),
            health=health,
        )

    def pull(self, image_ref: str) -> None:
        """Download ``image_ref`` into the local image store. Never touches containers."""
        try:
            self._client().images.pull(image_ref)
        except _SDK_ERRORS as e:
            raise RuntimeOpError(f"pull {image_ref} failed: {e}") from e

    def inspect_image(self, image_ref: str) -> str:
        try:
            image = self._client().images.get(image_ref)
        except _SDK_ERRORS as e:
            raise RuntimeOpError(f"image inspect {image_ref} failed: {e}") from e
        if not image.id:
            raise RuntimeOpError(f"image inspect {image_ref} returned no id")
        return image.id

    def remove(self, container_name: str) -> None:
        try:
            self._client().containers.get(container_name).remove()
        except NotFound:
            return
        except _SDK_ERRORS as e:
            raise RuntimeOpError(f"remove {container_name} failed: {e}") from e

    def list_slots(self, names: list[str]) -> list[ContainerSlot]:
        out: list[ContainerSlot] = []
        for name in names:
            try:
                out.append(self.inspect(name))
            except RuntimeOpError:
                out.append(ContainerSlot(name=name, state=None, status="unknown"))
        return out

    # ------------------------------------------------------------------
    # Compose
    # ------------------------------------------------------------------

    def compose_command(self) -> list[str]:
        if self._compose is not None:
            return list(self._compose)
        if self.cfg.compose_command.strip():
            self._compose = shlex.split(self.cfg.compose_command)
            return list(self._compose)
        for candidate in COMPOSE_CANDIDATES:
            if not self._which(candidate[0]):
                continue
            if len(candidate) > 1 and not self._compose_plugin_works(list(candidate)):
                continue
            self._compose = list(candidate)
            return list(self._compose)
        raise RuntimeOpError("No compose tool found (tried podman-compose, docker-compose, docker compose).")

    def _compose_plugin_works(self, cmd: list[str]) -> bool:
        try:
            proc = self._run([*cmd, "version"], capture_output=True, text=True, timeout=self.cfg.runtime_timeout_s)
        except (OSError, subprocess.TimeoutExpired):
            return False
        return proc.returncode == 0

    def up_one(self, service: str) -> None:
        self._compose_up([service])

    def up_all(self) -> None:
        self._compose_up([])

    def _compose_up(self, services: list[str]) -> None:
        cmd = [*self.compose_command(), "-f", self.cfg.compose_file, "up", "-d", *services]
        try:
            proc = self._run(
                cmd,
                cwd=self.cfg.compose_dir,
                capture_output=True,
                text=True,
                timeout=self.cfg.compose_timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            raise RuntimeOpError(f"{shlex.join(cmd)} timed out after {self.cfg.compose_timeout_s}s") from e
        except OSError as e:
            raise RuntimeOpError(f"{shlex.join(cmd)} could not run: {e}") from e
        if proc.returncode != 0:
            tail = (proc.stderr or proc.stdout or "").strip().splitlines()[-5:]
            raise RuntimeOpError(f"{shlex.join(cmd)} exited {proc.returncode}: {' | '.join(tail)}")

    def preflight(self) -> list[str]:
        """Return the problems that would make compose calls fail; empty when ready."""
        problems: list[str] = []
        if not os.path.isdir(self.cfg.compose_dir):
            problems.append(f"Compose directory not found: {self.cfg.compose_dir}")
        elif not os.path.isfile(os.path.join(self.cfg.compose_dir, self.cfg.compose_file)):
            problems.append(
                f"{self.cfg.compose_file} not found in {self.cfg.compose_dir}"
            )
        try:
            self.compose_command()
        except RuntimeOpError as e:
            problems.append(str(e))
        return problems
