# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Probing the resolution environment: locating commands on the search path and
listing the shared libraries a binary is linked against.
"""
import logging
import os
import re
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from ..exceptions import CommandNotFoundError, ProbeError
from .process_runner import ProcessRunner

logger = logging.getLogger(__name__)

# Absolute paths in ldd output, e.g. "libc.so.6 => /lib/x86_64-linux-gnu/libc.so.6 (0x...)"
LIBRARY_PATH_PATTERN = re.compile(r'(?<!\S)(/\S+)')

NOT_DYNAMIC_MARKERS = ("not a dynamic executable", "statically linked")


class RuntimeEnvironmentProbe(ABC):
    """
    Capabilities the resolver needs from the environment it runs in.
    """

    @abstractmethod
    def resolve_path(self, command: str) -> str:
        """
        Returns the absolute path of a command name.

        :raises CommandNotFoundError: If the command is not on the search path.
        :raises ProbeError: If the lookup outlives the configured timeout.
        """

    @abstractmethod
    def library_closure(self, binary_path: str) -> List[str]:
        """
        Returns the library paths reported by one introspection of a binary.

        :raises ProbeError: If introspection cannot run on the binary.
        """

    def is_executable(self, command: str) -> bool:
        """
        Checks whether a name is an executable on the search path.
        """
        try:
            self.resolve_path(command)
        except CommandNotFoundError:
            return False
        return True


class ShellEnvironmentProbe(RuntimeEnvironmentProbe):
    """
    Probe backed by the host's shell ``which`` and the ``ldd`` tool.
    """
    def __init__(self,
                 shell: Optional[str] = None,
                 ldd_command: str = "ldd",
                 timeout: Optional[float] = None):
        """
        :param shell: Interpreter used to run ``which``. Defaults to $SHELL, then /bin/sh.
        :param ldd_command: Dynamic-linker introspection tool.
        :param timeout: Seconds to wait for each external command. None waits forever.
        """
        self.shell = shell or os.environ.get("SHELL") or "/bin/sh"
        self.ldd_command = ldd_command
        self.runner = ProcessRunner(timeout=timeout)

    def resolve_path(self, command: str) -> str:
        try:
            output = self.runner.run([self.shell, "-c", f"which {shlex.quote(command)}"])
        except subprocess.CalledProcessError as e:
            raise CommandNotFoundError(command, f"which exited with {e.returncode}") from e
        except subprocess.TimeoutExpired as e:
            raise ProbeError(command, "which timed out") from e
        except OSError as e:
            raise CommandNotFoundError(command, str(e)) from e

        lines = output.strip().splitlines()
        path = lines[0].strip() if lines else ""
        # Some shells print "name: aliased to ..." or builtin notes with exit 0
        if not path or not os.path.isabs(path):
            raise CommandNotFoundError(command, f"unexpected which output: {output.strip()!r}")
        return path

    def is_executable(self, command: str) -> bool:
        return shutil.which(command) is not None

    def library_closure(self, binary_path: str) -> List[str]:
        try:
            output = self.runner.run([self.ldd_command, binary_path])
        except subprocess.CalledProcessError as e:
            detail = (e.stdout or "").strip() or (e.stderr or "").strip() or f"exit status {e.returncode}"
            raise ProbeError(binary_path, detail) from e
        except subprocess.TimeoutExpired as e:
            raise ProbeError(binary_path, f"{self.ldd_command} timed out") from e
        except OSError as e:
            raise ProbeError(binary_path, str(e)) from e

        for marker in NOT_DYNAMIC_MARKERS:
            if marker in output:
                raise ProbeError(binary_path, output.strip())

        return parse_library_paths(output)


def parse_library_paths(output: str) -> List[str]:
    """
    Scans introspection output for absolute paths, in order and without repeats.

    :param output: Text printed by ldd.
    :return: Library paths.
    """
    libraries: List[str] = []
    for match in LIBRARY_PATH_PATTERN.findall(output.strip()):
        if match not in libraries:
            libraries.append(match)
    return libraries
