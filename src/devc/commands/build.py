"""``devc build``: build (and optionally push) the image described by ``build``."""

from __future__ import annotations

import asyncio
import os
import subprocess
from pathlib import Path

from devc.commands._context import CliOptions, ProjectContext
from devc.devcontainer import BuildConfig
from devc.errors import BuildFailed, ConfigurationError
from devc.identity import sanitize_name
from devc.logger import logger


def image_tag(ctx: ProjectContext) -> str:
    """``--image-name``, else ``devc-<name or workspace basename>:latest``."""
    if ctx.options.image_name:
        return ctx.options.image_name
    base = ctx.devcontainer.name or os.path.basename(ctx.workspace_dir)
    return f"devc-{sanitize_name(base)}:latest"


def _resolve(path: str | None, config_dir: Path, default: str) -> str:
    if not path or path == ".":
        return str(config_dir / default) if default else str(config_dir)
    if os.path.isabs(path):
        return path
    return str(config_dir / path)


def build_args(build: BuildConfig, config_dir: Path, tag: str) -> list[str]:
    """Assemble ``docker build`` arguments.

    Dockerfile and context are resolved relative to the directory holding
    devcontainer.json.
    """
    dockerfile = _resolve(build.dockerfile, config_dir, "Dockerfile")
    context = _resolve(build.context, config_dir, "")

    args = ["build", "-t", tag, "-f", dockerfile]
    for key, value in build.args.items():
        args += ["--build-arg", f"{key}={value}"]
    if build.target:
        args += ["--target", build.target]
    for cache in build.cache_from:
        args += ["--cache-from", cache]
    args += build.options
    args.append(context)
    return args


def _run_docker_sync(*args: str) -> int:
    env = {**os.environ, "DOCKER_BUILDKIT": "1"}
    result = subprocess.run(["docker", *args], env=env)
    return result.returncode


async def run_docker(*args: str) -> int:
    """Run a ``docker`` CLI command with inherited stdio, off the event loop."""
    try:
        return await asyncio.to_thread(_run_docker_sync, *args)
    except FileNotFoundError as exc:
        raise BuildFailed("docker CLI not found on PATH") from exc


async def build_image(ctx: ProjectContext, *, push: bool = False) -> str:
    """Build the configured image and return its tag.  Raises BuildFailed."""
    build = ctx.devcontainer.build
    if build is None or not ctx.devcontainer.has_build():
        raise ConfigurationError("devcontainer.json does not have build configuration")

    tag = image_tag(ctx)
    args = build_args(build, ctx.config_path.parent.absolute(), tag)
    print(f"Building image {tag}...")
    logger.debug("Running docker build", args=args)
    if await run_docker(*args) != 0:
        raise BuildFailed(f"docker build failed for {tag}")
    print(f"Successfully built image: {tag}")

    if push:
        if await run_docker("push", tag) != 0:
            raise BuildFailed(f"docker push failed for {tag}")
        print(f"Successfully pushed image: {tag}")
    return tag


async def build(options: CliOptions) -> int:
    ctx = ProjectContext.load(options)
    await build_image(ctx, push=options.push)
    return 0
