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
Copying files out of a running container's filesystem to local disk.
"""
import io
import logging
import os
import posixpath
import tarfile
import tempfile
from typing import Any

from docker.errors import DockerException

from ..exceptions import ScriptRetrievalError

logger = logging.getLogger(__name__)

MAX_SYMLINK_DEPTH = 8


class ContainerFileRetriever:
    """
    Fetches single files from containers, like ``docker cp``.
    """

    def __init__(self, client: Any):
        """
        Initialize the retriever.

        Args:
            client: A docker.DockerClient.
        """
        self.client = client

    def copy_from_container(self, container_id: str, path: str) -> str:
        """
        Copy a file out of a container into a new local temporary file.

        The caller owns the returned file and must remove it.

        Args:
            container_id: Container id or name.
            path: Path of the file inside the container.

        Returns:
            Path of the local copy.
        """
        try:
            container = self.client.containers.get(container_id)
        except DockerException as e:
            raise ScriptRetrievalError(f"Failed to access container {container_id}: {e}") from e

        data = self._read_file(container, path, depth=0)

        fd, local_path = tempfile.mkstemp(prefix="entrypoint")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
        except OSError as e:
            os.remove(local_path)
            raise ScriptRetrievalError(f"Error writing temporary file {local_path}: {e}") from e

        logger.info("Copied %s:%s to %s", container_id[:12], path, local_path)
        return local_path

    def _read_file(self, container: Any, path: str, depth: int) -> bytes:
        """Read one regular file from the container, following symlinks."""
        if depth > MAX_SYMLINK_DEPTH:
            raise ScriptRetrievalError(f"Too many levels of symbolic links: {path}")

        try:
            bits, _stat = container.get_archive(path)
            archive = io.BytesIO(b"".join(bits))
        except DockerException as e:
            raise ScriptRetrievalError(f"Error copying {path} from container: {e}") from e

        try:
            with tarfile.open(fileobj=archive, mode="r") as tar:
                member = tar.next()
                if member is None:
                    raise ScriptRetrievalError(f"Empty archive returned for {path}")
                if member.issym():
                    target = member.linkname
                    if not posixpath.isabs(target):
                        target = posixpath.join(posixpath.dirname(path), target)
                    return self._read_file(container, posixpath.normpath(target), depth + 1)
                if not member.isfile():
                    raise ScriptRetrievalError(f"Not a regular file: {path}")
                f = tar.extractfile(member)
                return f.read()
        except tarfile.TarError as e:
            raise ScriptRetrievalError(f"Could not read archive for {path}: {e}") from e
