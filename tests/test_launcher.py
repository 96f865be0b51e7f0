"""Job launcher: request validation, argv building and process lifecycle."""

import sys

import pytest

from mockup_automation.errors import LauncherBusyError
from mockup_automation.launcher import JobLauncher, JobRequest
from mockup_automation.utils import RESULT_PREFIX

from fakes import FakePopen, FakeProcess


class TestJobRequest:

    def test_requires_some_design_input(self):
        with pytest.raises(ValueError, match="Missing design or inspirationId"):
            JobRequest.from_payload({"color": "blue"})

    def test_rejects_unknown_color(self):
        with pytest.raises(ValueError, match="Unknown color"):
            JobRequest.from_payload({"color": "green", "design": "cute cat"})

    def test_inspiration_id_wins(self):
        job = JobRequest.from_payload({
            "color": "Pink",
            "design": "ignored",
            "designUrl": "https://x/y.png",
            "inspirationId": "abc123",
        })
        argv = job.to_argv()

        assert argv[:4] == ["--color", "pink", "--inspiration-id", "abc123"]
        assert "--design" not in argv
        assert "--design-url" not in argv
        assert argv[-1] == "--close"

    def test_image_path_beats_url(self):
        job = JobRequest.from_payload({
            "design": "cute cat",
            "designImage": "/tmp/d.png",
            "designUrl": "https://x/y.png",
            "headless": False,
            "keepOpen": True,
        })
        argv = job.to_argv()

        assert "--design-image" in argv
        assert "--design-url" not in argv
        assert argv[argv.index("--design") + 1] == "cute cat"
        assert "--no-headless" in argv
        assert "--close" not in argv


class TestJobLauncher:

    def test_collects_output_and_result_path(self, tmp_path):
        process = FakeProcess([
            "Launching browser...\n",
            f"{RESULT_PREFIX} /out/mockup_blue_2026-10-19T08-27-01.png\n",
        ])
        popen = FakePopen(process)
        launcher = JobLauncher(command=["runner"], default_profile_dir=str(tmp_path / "profile"), popen=popen)

        handle = launcher.start(JobRequest(design="cute cat"))

        assert handle.wait(5)
        snapshot = handle.snapshot()
        assert snapshot["status"] == "completed"
        assert snapshot["resultPath"] == "/out/mockup_blue_2026-10-19T08-27-01.png"
        assert "Launching browser" in snapshot["output"]

        command, kwargs = popen.calls[0]
        assert command[0] == "runner"
        assert kwargs["env"]["PYTHONUNBUFFERED"] == "1"

    def test_nonzero_exit_is_failed(self, tmp_path):
        launcher = JobLauncher(command=["runner"], default_profile_dir=str(tmp_path),
                               popen=FakePopen(FakeProcess(["[ERROR] boom\n"], returncode=1)))

        handle = launcher.start(JobRequest(design="cute cat"))

        assert handle.wait(5)
        assert handle.snapshot()["status"] == "failed"
        assert not handle.succeeded

    def test_same_profile_is_busy_until_run_ends(self, tmp_path):
        first = FakeProcess(["working\n"], block=True)
        second = FakeProcess([])
        launcher = JobLauncher(command=["runner"], default_profile_dir=str(tmp_path / "profile"),
                               popen=FakePopen(first, second))

        handle = launcher.start(JobRequest(design="cute cat"))
        with pytest.raises(LauncherBusyError):
            launcher.start(JobRequest(design="another"))
        assert launcher.forget(handle.run_id) is False

        first.release.set()
        assert handle.wait(5)

        again = launcher.start(JobRequest(design="another"))
        assert again.wait(5)
        assert launcher.forget(handle.run_id) is True
        assert launcher.get(handle.run_id) is None

    def test_other_profile_runs_concurrently(self, tmp_path):
        first = FakeProcess([], block=True)
        launcher = JobLauncher(command=["runner"], default_profile_dir=str(tmp_path / "a"),
                               popen=FakePopen(first, FakeProcess([])))

        launcher.start(JobRequest(design="cute cat"))
        other = launcher.start(JobRequest(design="cute cat", profile_dir=str(tmp_path / "b")))

        assert other.wait(5)
        assert len(launcher.runs()) == 2
        first.release.set()

    def test_terminate_real_process(self, tmp_path):
        launcher = JobLauncher(
            command=[sys.executable, "-c", "import time; time.sleep(30)"],
            default_profile_dir=str(tmp_path),
        )
        handle = launcher.start(JobRequest(design="cute cat"))

        assert handle.running
        assert handle.terminate(grace=5) is True
        assert handle.wait(10)
        assert handle.snapshot()["status"] == "stopped"
        assert handle.terminate() is False
