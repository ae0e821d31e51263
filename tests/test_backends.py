"""Tests for crossbuild_tooling.build.backends (plan, prerequisites, invocation, artifact lookup)."""

import os
import subprocess
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from crossbuild_tooling.build.backends import build_target, plan_build, run_plan
from crossbuild_tooling.build.process import Invocation, run_invocation
from crossbuild_tooling.config import Backend, BuildConfig, Mode
from crossbuild_tooling.errors import (
    ArtifactNotFound,
    BuildInvocationFailed,
    InvalidArgument,
    TargetInstallFailed,
)

BACKENDS = "crossbuild_tooling.build.backends"


class TestPlanBuild:
    def test_local_build_uses_plain_cargo(self, config: BuildConfig) -> None:
        plan = plan_build(config, "linux-amd64", local=True)
        assert plan.backend == "local"
        assert plan.invocation.cmd == ("cargo", "build")
        assert plan.invocation.cwd == config.source_dir
        assert plan.artifact_path == config.source_dir / "target" / "debug" / "remote_server"
        assert plan.install_triple is None

    def test_local_release_with_features(self, config: BuildConfig) -> None:
        cfg = replace(config, mode=Mode.RELEASE, features=frozenset({"tls", "metrics"}))
        plan = plan_build(cfg, "linux-amd64", local=True)
        assert plan.invocation.cmd == (
            "cargo",
            "build",
            "--release",
            "--features",
            "metrics,tls",
        )
        assert plan.artifact_path.parent.name == "release"

    def test_direct_cross_compile(self, config: BuildConfig) -> None:
        plan = plan_build(config, "linux-arm64", local=False)
        assert plan.backend == "direct"
        assert plan.invocation.cmd == ("cargo", "build", "--target", "aarch64-unknown-linux-gnu")
        assert plan.install_triple == "aarch64-unknown-linux-gnu"
        assert plan.artifact_path == (
            config.source_dir / "target" / "aarch64-unknown-linux-gnu" / "debug" / "remote_server"
        )

    def test_zig_uses_zig_triple_but_host_triple_path(self, config: BuildConfig) -> None:
        cfg = replace(config, backend=Backend.ZIG)
        plan = plan_build(cfg, "linux-arm64", local=False)
        assert plan.backend == "zig"
        assert plan.invocation.cmd == (
            "cargo",
            "zigbuild",
            "--target",
            "aarch64-unknown-linux-gnu.2.17",
        )
        assert "aarch64-unknown-linux-gnu" in plan.artifact_path.parts
        assert plan.install_triple is None

    def test_zig_without_zig_triple_raises_before_subprocess(self, config: BuildConfig) -> None:
        cfg = replace(config, backend=Backend.ZIG)
        with (
            patch(f"{BACKENDS}.is_local_build", return_value=False),
            patch("subprocess.run") as m_run,
        ):
            with pytest.raises(InvalidArgument, match="windows-amd64"):
                plan_build(cfg, "windows-amd64", local=False)
            with pytest.raises(InvalidArgument):
                build_target(cfg, "windows-amd64")
        m_run.assert_not_called()

    def test_cross_backend_sets_engine_per_invocation(self, config: BuildConfig) -> None:
        cfg = replace(config, backend=Backend.CROSS, container_engine="podman")
        before = os.environ.get("CROSS_CONTAINER_ENGINE")
        plan = plan_build(cfg, "windows-amd64", local=False)
        assert plan.backend == "cross"
        assert plan.invocation.cmd == ("cross", "build", "--target", "x86_64-pc-windows-gnu")
        assert plan.invocation.env == {"CROSS_CONTAINER_ENGINE": "podman"}
        assert plan.artifact_path.name == "remote_server.exe"
        assert os.environ.get("CROSS_CONTAINER_ENGINE") == before

    def test_local_shortcut_wins_over_backend(self, config: BuildConfig) -> None:
        cfg = replace(config, backend=Backend.CROSS)
        plan = plan_build(cfg, "linux-amd64", local=True)
        assert plan.backend == "local"

    def test_isolated_target_dir(self, config: BuildConfig) -> None:
        plan = plan_build(config, "darwin-arm64", local=False, isolated=True)
        root = config.source_dir / "target" / "crossbuild" / "darwin-arm64"
        assert plan.invocation.env == {"CARGO_TARGET_DIR": str(root)}
        assert plan.artifact_path == root / "aarch64-apple-darwin" / "debug" / "remote_server"

    def test_host_detection_used_when_local_not_given(self, config: BuildConfig) -> None:
        with patch(f"{BACKENDS}.is_local_build", return_value=True) as m_local:
            plan = plan_build(config, "linux-armv7")
        m_local.assert_called_once_with("linux-armv7")
        assert plan.backend == "local"


class TestRunPlan:
    def test_nonzero_exit_is_build_failure(self, config: BuildConfig) -> None:
        plan = plan_build(config, "linux-arm64", local=False)
        with patch(f"{BACKENDS}.run_invocation", return_value=MagicMock(returncode=101)):
            with pytest.raises(BuildInvocationFailed) as exc_info:
                run_plan(plan)
        assert exc_info.value.exit_code == 101
        assert exc_info.value.backend == "direct"
        assert exc_info.value.token == "linux-arm64"
        assert exc_info.value.timed_out is False

    def test_timeout_is_flagged(self, config: BuildConfig) -> None:
        plan = plan_build(config, "linux-arm64", local=False)
        with patch(
            f"{BACKENDS}.run_invocation", side_effect=subprocess.TimeoutExpired(["cargo"], 1)
        ):
            with pytest.raises(BuildInvocationFailed) as exc_info:
                run_plan(plan)
        assert exc_info.value.timed_out is True

    def test_success_without_artifact(self, config: BuildConfig) -> None:
        plan = plan_build(config, "linux-arm64", local=False)
        with patch(f"{BACKENDS}.run_invocation", return_value=MagicMock(returncode=0)):
            with pytest.raises(ArtifactNotFound) as exc_info:
                run_plan(plan)
        assert exc_info.value.expected_path == plan.artifact_path

    def test_success_returns_artifact(self, config: BuildConfig) -> None:
        plan = plan_build(config, "linux-arm64", local=False)
        plan.artifact_path.parent.mkdir(parents=True)
        plan.artifact_path.write_bytes(b"bin")
        with patch(f"{BACKENDS}.run_invocation", return_value=MagicMock(returncode=0)):
            assert run_plan(plan) == plan.artifact_path


class TestBuildTarget:
    def test_direct_installs_rust_target_first(self, config: BuildConfig) -> None:
        cfg = replace(config, force_install_targets=True)
        calls: list[str] = []

        def fake_run(inv: Invocation, **kw):
            calls.append("build")
            return MagicMock(returncode=1)

        with (
            patch(f"{BACKENDS}.is_local_build", return_value=False),
            patch(
                f"{BACKENDS}.ensure_target",
                side_effect=lambda *a, **k: calls.append("install"),
            ) as m_ensure,
            patch(f"{BACKENDS}.run_invocation", side_effect=fake_run),
        ):
            with pytest.raises(BuildInvocationFailed):
                build_target(cfg, "linux-arm64")
        assert calls == ["install", "build"]
        assert m_ensure.call_args[0] == ("aarch64-unknown-linux-gnu", True)

    def test_cross_install_failure_fails_target(self, config: BuildConfig) -> None:
        cfg = replace(config, backend=Backend.CROSS)
        with (
            patch(f"{BACKENDS}.is_local_build", return_value=False),
            patch(f"{BACKENDS}.shutil.which", return_value=None),
            patch(f"{BACKENDS}.install_cross", return_value=False),
            patch(f"{BACKENDS}.run_invocation") as m_run,
        ):
            with pytest.raises(TargetInstallFailed, match="cross"):
                build_target(cfg, "linux-arm64")
        m_run.assert_not_called()


class TestRunInvocation:
    def test_env_is_scoped_to_the_call(self, tmp_path: Path) -> None:
        inv = Invocation(("cargo", "build"), tmp_path, {"CARGO_TARGET_DIR": "/x"}, 5)
        before = dict(os.environ)
        with patch("subprocess.run", return_value=MagicMock(returncode=0)) as m_run:
            run_invocation(inv)
        assert dict(os.environ) == before
        kwargs = m_run.call_args.kwargs
        assert kwargs["env"]["CARGO_TARGET_DIR"] == "/x"
        assert kwargs["timeout"] == 5
        assert kwargs["cwd"] == str(tmp_path)

    def test_no_env_inherits(self, tmp_path: Path) -> None:
        with patch("subprocess.run", return_value=MagicMock(returncode=0)) as m_run:
            run_invocation(Invocation(("cargo", "build"), tmp_path))
        assert m_run.call_args.kwargs["env"] is None
