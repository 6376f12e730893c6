"""
portalstack.engine.docker — Image build and push through the docker CLI.

    docker login <server> -u <user> --password-stdin
    docker build -t <image>:<tag> -f <dockerfile> <context>
    docker push <image>:<tag>
"""

from __future__ import annotations

import subprocess
from typing import Callable

from portalstack.core.cloud import RegistryImage


class BuildError(Exception):
    """docker login/build/push failed. Not retried."""
    pass


class DockerCli:
    def __init__(self, binary: str = "docker", runner: Callable | None = None):
        self.binary = binary
        self._run = runner or subprocess.run

    def _exec(self, args: list[str], step: str, stdin: str | None = None) -> str:
        cmd = [self.binary, *args]
        try:
            result = self._run(cmd, input=stdin, text=True, capture_output=True)
        except FileNotFoundError:
            raise BuildError(f"{self.binary} not found.")
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise BuildError(f"docker {step} failed: {detail}")
        return result.stdout

    def login(self, image: RegistryImage) -> None:
        if not image.username:
            return
        self._exec(
            ["login", image.registry_server, "-u", image.username, "--password-stdin"],
            "login",
            stdin=image.password,
        )

    def build(self, image: RegistryImage) -> None:
        args = ["build", "-t", image.image_ref]
        if image.dockerfile:
            args.extend(["-f", image.dockerfile])
        args.append(image.context)
        self._exec(args, "build")

    def push(self, image: RegistryImage) -> None:
        self._exec(["push", image.image_ref], "push")

    def publish(self, image: RegistryImage) -> None:
        """Login, build and push. Raises BuildError on the first failing step."""
        self.login(image)
        self.build(image)
        self.push(image)
