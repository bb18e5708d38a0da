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
Container runtime access: listing running containers and reading their
entrypoint configuration through the Docker Engine API.
"""
import logging
from typing import Any, Dict, List, Optional

import docker
from docker.errors import DockerException, NotFound

from ..exceptions import ContainerInspectionError
from ..MODELS.container_image import ContainerImageRef

logger = logging.getLogger(__name__)


class ContainerInspector:
    """
    Reads container metadata from the local Docker daemon.
    """

    def __init__(self, client: Optional[Any] = None):
        """
        Initialize the inspector.

        Args:
            client: A docker.DockerClient. Defaults to one built from the environment
                (DOCKER_HOST, DOCKER_TLS_VERIFY, DOCKER_CERT_PATH).
        """
        if client is None:
            try:
                client = docker.from_env()
            except DockerException as e:
                raise ContainerInspectionError(f"Could not connect to the Docker daemon: {e}") from e
        self.client = client

    def list_containers(self) -> List[str]:
        """
        List the ids of running containers.

        Returns:
            Container ids in the order the daemon reports them.
        """
        try:
            containers = self.client.containers.list()
        except DockerException as e:
            raise ContainerInspectionError(f"Failed to list containers: {e}") from e
        return [c.id for c in containers]

    def inspect(self, container_id: str) -> ContainerImageRef:
        """
        Inspect a container by id or name.

        Args:
            container_id: Container id, id prefix or name.

        Returns:
            The container's image name and entrypoint configuration.
        """
        try:
            container = self.client.containers.get(container_id)
        except NotFound as e:
            raise ContainerInspectionError(f"No such container: {container_id}") from e
        except DockerException as e:
            raise ContainerInspectionError(f"Failed to inspect container {container_id}: {e}") from e
        return self._to_ref(container.attrs)

    def list_images(self) -> List[ContainerImageRef]:
        """Inspect every running container."""
        return [self.inspect(container_id) for container_id in self.list_containers()]

    def first_container(self) -> ContainerImageRef:
        """
        Inspect the first running container.

        Raises:
            ContainerInspectionError: If no container is running.
        """
        ids = self.list_containers()
        if not ids:
            raise ContainerInspectionError("No running containers found")
        return self.inspect(ids[0])

    def close(self) -> None:
        """Release the underlying API client."""
        self.client.close()

    @staticmethod
    def _to_ref(attrs: Dict[str, Any]) -> ContainerImageRef:
        config = attrs.get("Config") or {}
        return ContainerImageRef(
            id=attrs.get("Id", ""),
            name=config.get("Image", ""),
            entrypoint=_to_list(config.get("Entrypoint")),
            cmd=_to_list(config.get("Cmd")),
        )


def _to_list(value: Any) -> List[str]:
    # The API reports unset fields as null and shell-form strings as plain strings
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)
