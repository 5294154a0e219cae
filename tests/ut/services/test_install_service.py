"""InstallService 单元测试（录制执行器）"""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from modinstall.core.config import Config
from modinstall.core.env_lock import LockRegistry
from modinstall.core.exceptions import ExecutionFailed, InvalidDeclaration
from modinstall.services.install_service import InstallService


def _config(home: Path, tmp_path: Path, **kwargs) -> Config:
    kwargs.setdefault("requirements", str(tmp_path / "requirements.txt"))
    kwargs.setdefault("user_scope", False)
    return Config(python_path=str(home), **kwargs)


@pytest.fixture()
def svc_factory(fake_executor, python_home: Path, tmp_path: Path):
    def make(**kwargs) -> InstallService:
        return InstallService(
            _config(python_home, tmp_path, **kwargs), fake_executor, LockRegistry(),
        )
    return make


class TestInstall:
    def test_nothing_declared(self, svc_factory, fake_executor) -> None:
        report = svc_factory().install()
        assert report.skipped
        assert fake_executor.calls == []

    def test_skips_installed(self, svc_factory, fake_executor) -> None:
        fake_executor.on("freeze", stdout="A==1\nc==3\n")
        report = svc_factory(modules=["a:1", "b:2"]).install()
        assert report.installed == ["b==2"]
        assert fake_executor.pip_calls() == [["freeze"], ["install", "b==2"]]

    def test_all_installed(self, svc_factory, fake_executor, caplog) -> None:
        fake_executor.on("freeze", stdout="a==1\n")
        caplog.set_level("INFO")
        report = svc_factory(modules=["a:1"]).install()
        assert not report.changed
        assert not report.skipped
        assert "所有模块均已安装且版本正确" in caplog.text

    def test_explicit_modules_override_config(self, svc_factory, fake_executor) -> None:
        report = svc_factory(modules=["a:1"]).install(modules=["b:2"])
        assert report.installed == ["b==2"]

    def test_force_skips_freeze(self, svc_factory, fake_executor) -> None:
        fake_executor.on("freeze", stdout="a==1\n")
        svc = svc_factory(modules=["a:1"])
        assert svc.install(force=True).installed == ["a==1"]
        assert ["freeze"] not in fake_executor.pip_calls()

    def test_always_install_from_config(self, svc_factory, fake_executor) -> None:
        fake_executor.on("freeze", stdout="a==1\n")
        assert svc_factory(modules=["a:1"], always_install=True).install().installed == ["a==1"]

    def test_feature_and_vcs_install_strings(self, svc_factory, fake_executor) -> None:
        report = svc_factory(modules=[
            "requests[socks,security]:2.31.0",
            "git+https://x/@v1#egg=pkg-2.0 --editable",
        ]).install()
        assert report.installed == [
            "requests[socks,security]==2.31.0",
            "--editable git+https://x/@v1#egg=pkg",
        ]
        assert fake_executor.pip_calls()[-1] == [
            "install", "--editable", "git+https://x/@v1#egg=pkg",
        ]

    def test_install_options(self, svc_factory, fake_executor) -> None:
        svc_factory(modules=["a:1"], install_options=["--no-deps"]).install()
        assert fake_executor.pip_calls()[-1] == ["install", "a==1", "--no-deps"]

    def test_user_scope_not_used_for_freeze(self, svc_factory, fake_executor) -> None:
        svc_factory(modules=["a:1"], user_scope=True).install()
        assert fake_executor.pip_calls() == [["freeze"], ["install", "a==1", "--user"]]

    def test_strict_requirements(self, svc_factory, fake_executor, tmp_path: Path) -> None:
        (tmp_path / "requirements.txt").write_text("a==1\nb==2\n", encoding="utf-8")
        report = svc_factory(modules=["b:3"]).install()
        assert report.installed == ["a==1", "b==3"]
        assert not report.requirements_installed

    def test_non_strict_delegates_to_pip(
        self, svc_factory, fake_executor, tmp_path: Path, monkeypatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "requirements.txt").write_text("flask>=2.0\n", encoding="utf-8")
        report = svc_factory(strict_requirements=False).install()
        assert report.requirements_installed
        assert report.changed
        assert fake_executor.pip_calls() == [["install", "-r", "requirements.txt"]]

    def test_non_strict_then_modules(
        self, svc_factory, fake_executor, tmp_path: Path, monkeypatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "requirements.txt").write_text("flask>=2.0\n", encoding="utf-8")
        svc_factory(strict_requirements=False, modules=["a:1"]).install()
        assert fake_executor.pip_calls() == [
            ["install", "-r", "requirements.txt"],
            ["freeze"],
            ["install", "a==1"],
        ]

    def test_strict_range_rejected(self, svc_factory, tmp_path: Path) -> None:
        (tmp_path / "requirements.txt").write_text("flask>=2.0\n", encoding="utf-8")
        with pytest.raises(InvalidDeclaration):
            svc_factory().install()

    def test_invalid_declaration_runs_nothing(self, svc_factory, fake_executor) -> None:
        with pytest.raises(InvalidDeclaration):
            svc_factory(modules=["requests"]).install()
        assert fake_executor.calls == []

    def test_invalid_declaration_before_requirements_install(
        self, svc_factory, fake_executor, tmp_path: Path, monkeypatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "requirements.txt").write_text("flask>=2.0\n", encoding="utf-8")
        svc = svc_factory(strict_requirements=False, modules=["broken"])
        with pytest.raises(InvalidDeclaration):
            svc.install()
        assert fake_executor.pip_calls() == []

    def test_show_installed_versions(self, svc_factory, fake_executor) -> None:
        fake_executor.on("list", stdout="Package Version\n------- -------\na       1\n")
        report = svc_factory(modules=["a:1"], show_installed_versions=True).install()
        assert "a       1" in report.listing

    def test_failure_propagates_and_releases_lock(self, svc_factory, fake_executor) -> None:
        fake_executor.on("install", returncode=1, stderr="boom")
        svc = svc_factory(modules=["a:1"])
        with pytest.raises(ExecutionFailed):
            svc.install()
        env = svc.pip().python.binary_dir
        assert not svc.locks.lock_for(env).locked()


class TestConcurrency:
    def _slow(self, argv: list[str]) -> None:
        time.sleep(0.05)

    def test_same_environment_serialized(self, fake_executor, python_home, tmp_path) -> None:
        fake_executor.on("install", handler=self._slow)
        locks = LockRegistry()
        cfg = _config(python_home, tmp_path)
        svc = InstallService(cfg, fake_executor, locks)
        threads = [
            threading.Thread(target=svc.install, kwargs={"modules": [f"m{i}:1", f"n{i}:1"]})
            for i in range(3)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        # 每个线程的 freeze + install 调用必须连续出现，不能交错
        owners = [c.thread for c in fake_executor.calls]
        assert len(owners) == 9
        for i in range(0, 9, 3):
            assert len(set(owners[i:i + 3])) == 1

    def test_distinct_environments_parallel(self, fake_executor, tmp_path) -> None:
        barrier = threading.Barrier(2, timeout=5)
        fake_executor.on("install", handler=lambda argv: barrier.wait())
        locks = LockRegistry()
        errors: list[BaseException] = []

        def run(home: Path) -> None:
            home.mkdir(parents=True)
            cfg = _config(home, tmp_path, modules=["a:1"], always_install=True)
            try:
                InstallService(cfg, fake_executor, locks).install()
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [
            threading.Thread(target=run, args=(tmp_path / name / "bin",))
            for name in ("env1", "env2")
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert errors == []
        assert len(locks._locks) == 2


class TestQueries:
    OUTDATED = (
        "Package    Version Latest Type\n"
        "---------- ------- ------ -----\n"
        "Requests   2.0.0   2.31.0 wheel\n"
        "requests-x 1.0     1.1    wheel\n"
        "six        1.15.0  1.16.0 wheel\n"
    )

    def test_check_updates_declared_only(self, svc_factory, fake_executor) -> None:
        fake_executor.on("-o", stdout=self.OUTDATED)
        lines = svc_factory(modules=["requests:2.0.0"]).check_updates()
        assert lines == [
            "package    version latest type",
            "---------- ------- ------ -----",
            "requests   2.0.0   2.31.0 wheel",
        ]

    def test_check_updates_show_all(self, svc_factory, fake_executor) -> None:
        fake_executor.on("-o", stdout=self.OUTDATED)
        assert len(svc_factory().check_updates(show_all=True)) == 5

    def test_check_updates_none(self, svc_factory, fake_executor) -> None:
        fake_executor.on("-o", stdout=self.OUTDATED)
        assert svc_factory(modules=["click:8.1.7"]).check_updates() == []

    def test_check_updates_nothing_declared(self, svc_factory, fake_executor) -> None:
        assert svc_factory().check_updates() == []
        assert fake_executor.calls == []

    def test_list_modules_scopes(self, svc_factory, fake_executor) -> None:
        svc = svc_factory(user_scope=True)
        svc.list_modules()
        svc.list_modules(all_scopes=True)
        assert fake_executor.pip_calls() == [
            ["list", "--format=columns", "--user"],
            ["list", "--format=columns"],
        ]

    def test_uninstall(self, svc_factory, fake_executor) -> None:
        fake_executor.on("show", returncode=1)
        svc_factory().uninstall("pkg")
        assert fake_executor.pip_calls() == [["uninstall", "pkg", "-y"], ["show", "pkg"]]

    def test_uninstall_warns_when_still_declared(self, svc_factory, fake_executor, caplog) -> None:
        fake_executor.on("show", returncode=1)
        svc_factory(modules=["Requests:2.31.0"]).uninstall("requests")
        assert "Requests:2.31.0" in caplog.text


class TestVcsPlanning:
    DECL = "git+https://x/@v1#egg=pkg-2.0"

    def test_modern_pip_direct_url_line(self, svc_factory, fake_executor) -> None:
        fake_executor.on("freeze", stdout="pkg @ git+https://x/@v1\n")
        fake_executor.on("--version", stdout="pip 23.1.2 from /lib/pip (python 3.11)")
        assert svc_factory(modules=[self.DECL]).install().installed == []
        assert ["--version"] in fake_executor.pip_calls()

    def test_legacy_pip_reinstalls(self, svc_factory, fake_executor) -> None:
        fake_executor.on("freeze", stdout="pkg @ git+https://x/@v1\n")
        fake_executor.on("--version", stdout="pip 20.3.4 from /lib/pip (python 3.8)")
        report = svc_factory(modules=[self.DECL]).install()
        assert report.installed == ["git+https://x/@v1#egg=pkg"]

    def test_no_version_query_without_vcs(self, svc_factory, fake_executor) -> None:
        svc_factory(modules=["a:1"]).install()
        assert ["--version"] not in fake_executor.pip_calls()


class TestPipxOperations:
    def test_run_app(self, svc_factory, fake_executor) -> None:
        svc_factory().run_app("cowsay", ["-t", "hi"])
        assert fake_executor.module_calls("pipx") == [["run", "cowsay", "-t", "hi"]]

    def test_inject_under_lock(self, svc_factory, fake_executor) -> None:
        svc = svc_factory()
        env = svc.pipx().python.binary_dir
        held: list[bool] = []
        fake_executor.on("inject", handler=lambda argv: held.append(svc.locks.lock_for(env).locked()))
        svc.inject("black", iter(["click"]))
        assert held == [True]
        assert fake_executor.module_calls("pipx")[-1] == ["inject", "black", "click"]
        assert not svc.locks.lock_for(env).locked()
