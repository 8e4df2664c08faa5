import os, subprocess, logging, shlex
from dataclasses import dataclass
from pathlib     import Path
from typing      import Optional, Tuple

from sea_ice_ops_errors import TaskError, TaskOutputError

__all__ = ["ExternalTask", "TaskRunner"]


@dataclass(frozen=True)
class ExternalTask:
    """
    One invocation of an external command line tool.

    Parameters
    ----------
    name : str
        Short step label used in log lines and error messages.
    argv : tuple[str]
        Full command, executable first.
    expected_outputs : tuple[str]
        Glob patterns, relative to `D_output`, that must match at least one
        file once the command exits. Empty means no check.
    D_output : Path, optional
        Directory the patterns are resolved against.
    env : tuple[tuple[str, str]], optional
        Extra environment variables layered over `os.environ`.
    P_log : Path, optional
        File the command output is appended to (the equivalent of `| tee`).
    """
    name             : str
    argv             : Tuple[str, ...]
    expected_outputs : Tuple[str, ...]    = ()
    D_output         : Optional[Path]     = None
    env              : Tuple[Tuple[str, str], ...] = ()
    P_log            : Optional[Path]     = None

    def command_line(self):
        return " ".join(shlex.quote(str(a)) for a in self.argv)


class TaskRunner:
    """
    Run `ExternalTask`s to completion, one at a time.

    Retries default to zero so that a failing tool stops the run; a positive
    `retries` re-invokes the same command that many extra times before giving up.
    """
    def __init__(self, retries=0, timeout=None, verbose=False, logger=None):
        self.retries = int(retries) if retries else 0
        self.timeout = timeout
        self.verbose = verbose
        self.logger  = logger if logger is not None else logging.getLogger("sea_ice_ops")

    def _log_output(self, task, output):
        if not output:
            return
        for line in output.splitlines():
            self.logger.info(f"[{task.name}] {line}")
        if task.P_log is not None:
            Path(task.P_log).parent.mkdir(parents=True, exist_ok=True)
            with open(task.P_log, 'a') as f:
                f.write(output if output.endswith("\n") else output + "\n")

    def _execute(self, task):
        env = dict(os.environ, **dict(task.env)) if task.env else None
        try:
            proc = subprocess.run([str(a) for a in task.argv],
                                  stdout  = subprocess.PIPE,
                                  stderr  = subprocess.STDOUT,
                                  text    = True,
                                  env     = env,
                                  timeout = self.timeout)
        except FileNotFoundError as e:
            raise TaskError(task.name, f"executable not found: {task.argv[0]}", retryable=False) from e
        except subprocess.TimeoutExpired as e:
            output = e.output.decode() if isinstance(e.output, bytes) else e.output
            self._log_output(task, output)
            raise TaskError(task.name, f"timed out after {self.timeout} seconds") from e
        self._log_output(task, proc.stdout)
        if proc.returncode != 0:
            raise TaskError(task.name, f"exited with status {proc.returncode}", returncode=proc.returncode)
        return proc

    def check_outputs(self, task):
        if not task.expected_outputs:
            return
        D_out   = Path(task.D_output) if task.D_output is not None else Path(".")
        missing = [pat for pat in task.expected_outputs if not any(D_out.glob(pat))]
        if missing:
            raise TaskOutputError(task.name, f"expected outputs not found in {D_out}: {missing}")

    def run(self, task):
        """
        Run `task`, retrying on failure, then validate its outputs.

        Raises
        ------
        TaskError
            Executable missing, non-zero exit or timeout on the final attempt.
        TaskOutputError
            Command succeeded but an expected output pattern matched nothing.
        """
        msg = f"running {task.name}: {task.command_line()}"
        if self.verbose:
            self.logger.info(msg)
        else:
            self.logger.debug(msg)
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                proc = self._execute(task)
                break
            except TaskError as e:
                if attempt == attempts or not e.retryable:
                    raise
                self.logger.warning(f"{e} (attempt {attempt}/{attempts}), retrying")
        self.check_outputs(task)
        return proc
