# s3source/modules/hooks.py
import os
import subprocess
from typing import Callable, Dict, List, Optional, Union

from s3source.modules import logger

Hook = Union[Callable, str]


class HookManager:
    """
    Install hooks.
    - Hooks are Python callables `hook(spec, destination)` or shell commands.
    - Shell commands get S3SOURCE_PACKAGE, S3SOURCE_VERSION and
      S3SOURCE_DESTINATION in their environment.
    - A failing hook propagates to the caller.
    """

    def __init__(self, hooks: Optional[Dict[str, List[Hook]]] = None, log: Optional[logger.Logger] = None):
        self.hooks: Dict[str, List[Hook]] = {}
        self.log = log or logger.Logger("hooks")
        for stage, entries in (hooks or {}).items():
            for hook in entries:
                self.register(stage, hook)

    @classmethod
    def from_config(cls, cfg, log: Optional[logger.Logger] = None) -> "HookManager":
        """Build from `[hooks] <stage> = cmd; cmd` entries."""
        hooks = {}
        if "hooks" in cfg:
            for stage in cfg["hooks"]:
                hooks[stage] = cfg.getlist("hooks", stage)
        return cls(hooks, log=log)

    # ------------------------
    # Registration
    # ------------------------
    def register(self, stage: str, hook: Hook):
        self.hooks.setdefault(stage, []).append(hook)
        self.log.debug(f"Hook registered for stage={stage}: {hook}")

    # ------------------------
    # Execution
    # ------------------------
    def run_hooks(self, stage: str, spec, destination: Optional[str] = None):
        entries = self.hooks.get(stage, [])
        if not entries:
            return
        self.log.debug(f"Running {len(entries)} hook(s) for stage={stage} ({spec.full_name})")
        for hook in entries:
            if callable(hook):
                self._execute_func(hook, spec, destination)
            elif isinstance(hook, str):
                self._execute_command(hook, spec, destination)
            else:
                self.log.warning(f"Invalid hook ignored: {hook!r}")

    def _execute_func(self, func: Callable, spec, destination: Optional[str]):
        try:
            func(spec, destination)
        except Exception as e:
            self.log.error(f"Python hook {getattr(func, '__name__', func)} failed: {e}")
            raise

    def _execute_command(self, command: str, spec, destination: Optional[str]):
        self.log.info(f"Running hook command: {command}")
        env = os.environ.copy()
        env["S3SOURCE_PACKAGE"] = spec.name
        env["S3SOURCE_VERSION"] = spec.version
        if destination:
            env["S3SOURCE_DESTINATION"] = destination
        try:
            subprocess.run(command, shell=True, check=True, env=env, cwd=destination)
        except subprocess.CalledProcessError as e:
            self.log.error(f"Hook '{command}' failed: {e}")
            raise

    def list_hooks(self) -> Dict[str, List[str]]:
        return {
            stage: [getattr(h, "__name__", str(h)) for h in entries]
            for stage, entries in self.hooks.items()
        }
