"""Tests for image builds from the ``build`` section."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, call, patch

import pytest
from conftest import write_devcontainer

from devc.commands import build as build_cmd
from devc.commands._context import CliOptions, ProjectContext
from devc.devcontainer import BuildConfig
from devc.errors import BuildFailed, ConfigurationError


@pytest.fixture
def project(tmp_path, monkeypatch):
    workspace = tmp_path / "proj"
    workspace.mkdir()
    monkeypatch.chdir(workspace)
    return Path.cwd()


class TestBuildArgs:
    def test_defaults(self):
        args = build_cmd.build_args(BuildConfig(dockerfile="Dockerfile"), Path("/p/.dc"), "t:1")
        assert args == ["build", "-t", "t:1", "-f", "/p/.dc/Dockerfile", "/p/.dc"]

    def test_all_options(self):
        build = BuildConfig.model_validate(
            {
                "dockerfile": "../docker/Dockerfile.dev",
                "context": "..",
                "args": {"VARIANT": "3.12", "DEBUG": 1},
                "target": "dev",
                "cacheFrom": ["reg/cache:a", "reg/cache:b"],
                "options": ["--network=host"],
            }
        )

        args = build_cmd.build_args(build, Path("/p/.dc"), "t:1")

        assert args == [
            "build",
            "-t",
            "t:1",
            "-f",
            "/p/.dc/../docker/Dockerfile.dev",
            "--build-arg",
            "VARIANT=3.12",
            "--build-arg",
            "DEBUG=1",
            "--target",
            "dev",
            "--cache-from",
            "reg/cache:a",
            "--cache-from",
            "reg/cache:b",
            "--network=host",
            "/p/.dc/..",
        ]

    def test_absolute_paths_kept(self):
        build = BuildConfig(dockerfile="/abs/Dockerfile", context="/abs")
        args = build_cmd.build_args(build, Path("/p/.dc"), "t")
        assert args[4] == "/abs/Dockerfile"
        assert args[-1] == "/abs"


class TestImageTag:
    def test_from_workspace_basename(self, project):
        write_devcontainer(project, {"build": {"dockerfile": "Dockerfile"}})
        assert build_cmd.image_tag(ProjectContext.load(CliOptions())) == "devc-proj:latest"

    def test_from_config_name(self, project):
        write_devcontainer(project, {"name": "Web App", "build": {"dockerfile": "Dockerfile"}})
        assert build_cmd.image_tag(ProjectContext.load(CliOptions())) == "devc-web_app:latest"

    def test_explicit(self, project):
        write_devcontainer(project, {"build": {"dockerfile": "Dockerfile"}})
        ctx = ProjectContext.load(CliOptions(image_name="reg/x:dev"))
        assert build_cmd.image_tag(ctx) == "reg/x:dev"


class TestBuildImage:
    @pytest.mark.asyncio
    async def test_build(self, project, capsys):
        write_devcontainer(project, {"build": {"dockerfile": "Dockerfile"}})
        ctx = ProjectContext.load(CliOptions())

        with patch("devc.commands.build.run_docker", AsyncMock(return_value=0)) as docker:
            assert await build_cmd.build_image(ctx) == "devc-proj:latest"

        docker.assert_awaited_once()
        assert "Successfully built image: devc-proj:latest" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_push(self, project):
        write_devcontainer(project, {"build": {"dockerfile": "Dockerfile"}})
        ctx = ProjectContext.load(CliOptions())

        with patch("devc.commands.build.run_docker", AsyncMock(return_value=0)) as docker:
            await build_cmd.build_image(ctx, push=True)

        assert docker.await_args_list[-1] == call("push", "devc-proj:latest")

    @pytest.mark.asyncio
    async def test_build_failure(self, project):
        write_devcontainer(project, {"build": {"dockerfile": "Dockerfile"}})
        ctx = ProjectContext.load(CliOptions())

        with patch("devc.commands.build.run_docker", AsyncMock(return_value=1)) as docker:
            with pytest.raises(BuildFailed, match="docker build failed"):
                await build_cmd.build_image(ctx, push=True)
        docker.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_push_failure(self, project):
        write_devcontainer(project, {"build": {"dockerfile": "Dockerfile"}})
        ctx = ProjectContext.load(CliOptions())

        with patch("devc.commands.build.run_docker", AsyncMock(side_effect=[0, 1])):
            with pytest.raises(BuildFailed, match="docker push failed"):
                await build_cmd.build_image(ctx, push=True)

    @pytest.mark.asyncio
    async def test_no_build_section(self, project):
        write_devcontainer(project, {"image": "ubuntu"})
        with pytest.raises(ConfigurationError, match="build configuration"):
            await build_cmd.build(CliOptions())

    @pytest.mark.asyncio
    async def test_missing_docker_cli(self):
        with patch("devc.commands.build._run_docker_sync", side_effect=FileNotFoundError):
            with pytest.raises(BuildFailed, match="not found"):
                await build_cmd.run_docker("version")
