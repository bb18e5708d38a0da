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
Execution of external tools with captured output and an optional bounded wait.
"""
import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)


class ProcessRunner:
    """
    Runs a single external command to completion and returns its output.
    Every command is attempted exactly once.
    """
    def __init__(self, timeout: Optional[float] = None):
        """
        Initializes the process runner.

        Args:
            timeout (Optional[float]): Seconds to wait before giving up. None waits forever.
        """
        self.timeout = timeout

    def run(self, command: List[str]) -> str:
        """
        Runs the command and returns its stdout.

        Args:
            command (List[str]): Command and arguments to execute.

        Returns:
            str: Captured standard output.

        Raises:
            subprocess.CalledProcessError: If the command exits non-zero.
            subprocess.TimeoutExpired: If the command outlives the timeout.
            OSError: If the executable cannot be started.
        """
        logger.debug("Executing command: %s", " ".join(command))
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
            # Avoid shell=True for security reasons (CWE-78)
            shell=False
        )
        return result.stdout
