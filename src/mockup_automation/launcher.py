"""
Run automation jobs as isolated subprocesses.

Each started job gets a RunHandle that owns its process, its output buffer
and its completion signal. The launcher refuses a second concurrent run on
the same browser profile, since a profile directory cannot be shared.
"""

import logging
import os
import subprocess
import sys
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import psutil

from .errors import LauncherBusyError
from .models import ColorKey
from .utils import RESULT_PREFIX


logger = logging.getLogger("MockupAutomation.Launcher")

DEFAULT_COMMAND = [sys.executable, "-m", "mockup_automation"]


@dataclass(frozen=True)
class JobRequest:
    """Inputs of one automation run."""

    color: str = "blue"
    design: str = ""
    design_image: Optional[str] = None
    design_url: Optional[str] = None
    inspiration_id: Optional[str] = None
    output_dir: Optional[str] = None
    profile_dir: Optional[str] = None
    headless: Optional[bool] = None
    keep_open: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "JobRequest":
        """
        Build a request from a JSON body.

        Raises:
            ValueError: When no design input is given or the color is unknown
        """
        color = (data.get("color") or "blue").lower()
        if color not in {c.value for c in ColorKey}:
            raise ValueError(f"Unknown color: {color}")

        job = cls(
            color=color,
            design=data.get("design") or "",
            design_image=data.get("designImage") or None,
            design_url=data.get("designUrl") or None,
            inspiration_id=data.get("inspirationId") or None,
            output_dir=data.get("output") or None,
            profile_dir=data.get("profileDir") or None,
            headless=data.get("headless"),
            keep_open=bool(data.get("keepOpen", False)),
        )
        if not (job.inspiration_id or job.design_image or job.design_url or job.design):
            raise ValueError("Missing design or inspirationId")
        return job

    def to_argv(self) -> List[str]:
        argv = ["--color", self.color]
        # Lookup id wins over every other design input
        if self.inspiration_id:
            argv += ["--inspiration-id", self.inspiration_id]
        else:
            if self.design_image:
                argv += ["--design-image", self.design_image]
            elif self.design_url:
                argv += ["--design-url", self.design_url]
            if self.design:
                argv += ["--design", self.design]
        if self.output_dir:
            argv += ["--output", self.output_dir]
        if self.profile_dir:
            argv += ["--profile-dir", self.profile_dir]
        if self.headless is not None:
            argv.append("--headless" if self.headless else "--no-headless")
        if not self.keep_open:
            argv.append("--close")
        return argv


class RunHandle:
    """One running (or finished) automation process."""

    def __init__(self, run_id: str, process: subprocess.Popen, profile_key: str, command: List[str]):
        self.run_id = run_id
        self.process = process
        self.profile_key = profile_key
        self.command = command
        self.started_at = time.time()
        self.finished_at: Optional[float] = None
        self.returncode: Optional[int] = None
        self.result_path: Optional[str] = None
        self.terminated = False
        self.done = threading.Event()

        self._lines: List[str] = []
        self._lock = threading.Lock()
        self._reader = threading.Thread(target=self._pump, name=f"run-{run_id}", daemon=True)
        self._reader.start()

    def _pump(self):
        try:
            for line in self.process.stdout:
                with self._lock:
                    self._lines.append(line)
                stripped = line.strip()
                if stripped.startswith(RESULT_PREFIX):
                    self.result_path = stripped[len(RESULT_PREFIX):].strip()
                logger.debug(f"[{self.run_id}] {line.rstrip()}")
        finally:
            self.returncode = self.process.wait()
            self.finished_at = time.time()
            self.done.set()
            logger.info(f"Run {self.run_id} finished with code {self.returncode}")

    @property
    def output(self) -> str:
        with self._lock:
            return "".join(self._lines)

    @property
    def running(self) -> bool:
        return not self.done.is_set()

    @property
    def succeeded(self) -> bool:
        return self.done.is_set() and self.returncode == 0 and self.result_path is not None

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.done.wait(timeout)

    def terminate(self, grace: float = 2.0) -> bool:
        """Stop the process and its children (the browser). Returns False if already finished."""
        if self.done.is_set():
            return False

        try:
            parent = psutil.Process(self.process.pid)
            procs = parent.children(recursive=True) + [parent]
        except psutil.NoSuchProcess:
            return False

        self.terminated = True
        for proc in procs:
            try:
                proc.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.debug(f"Terminate failed for PID {proc.pid}: {e}")

        gone, alive = psutil.wait_procs(procs, timeout=grace)
        for proc in alive:
            try:
                proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.debug(f"Kill failed for PID {proc.pid}: {e}")

        logger.info(f"Run {self.run_id} terminated ({len(gone)} stopped, {len(alive)} killed)")
        return True

    def snapshot(self) -> Dict[str, Any]:
        if self.running:
            status = "running"
        elif self.terminated:
            status = "stopped"
        elif self.succeeded:
            status = "completed"
        else:
            status = "failed"
        return {
            "runId": self.run_id,
            "status": status,
            "running": self.running,
            "returnCode": self.returncode,
            "resultPath": self.result_path,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "output": self.output,
        }


class JobLauncher:
    """Starts runs and keeps the handles it created."""

    def __init__(
        self,
        command: Optional[List[str]] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        default_profile_dir: str = ".browser-data",
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.command = list(command or DEFAULT_COMMAND)
        self.cwd = cwd
        self.env = env
        self.default_profile_dir = default_profile_dir
        self._popen = popen
        self._runs: Dict[str, RunHandle] = {}
        self._lock = threading.Lock()

    def _profile_key(self, job: JobRequest) -> str:
        return str(Path(job.profile_dir or self.default_profile_dir).resolve())

    def start(self, job: JobRequest) -> RunHandle:
        """
        Spawn one run.

        Raises:
            LauncherBusyError: A run on the same profile is still active
        """
        profile_key = self._profile_key(job)
        command = self.command + job.to_argv()

        env = dict(os.environ if self.env is None else self.env)
        env["PYTHONUNBUFFERED"] = "1"
        env["PYTHONIOENCODING"] = "utf-8"

        with self._lock:
            for handle in self._runs.values():
                if handle.running and handle.profile_key == profile_key:
                    raise LauncherBusyError(f"Run {handle.run_id} is already using profile {profile_key}")

            logger.info(f"Starting run: {' '.join(command)}")
            process = self._popen(
                command,
                cwd=self.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
            run_id = uuid.uuid4().hex[:12]
            handle = RunHandle(run_id, process, profile_key, command)
            self._runs[run_id] = handle
        return handle

    def get(self, run_id: str) -> Optional[RunHandle]:
        with self._lock:
            return self._runs.get(run_id)

    def forget(self, run_id: str) -> bool:
        """Drop a finished run. Running runs are kept."""
        with self._lock:
            handle = self._runs.get(run_id)
            if handle is None or handle.running:
                return False
            del self._runs[run_id]
            return True

    def runs(self) -> List[RunHandle]:
        with self._lock:
            return list(self._runs.values())
