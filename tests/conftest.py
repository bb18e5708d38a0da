"""
Shared fakes for the runtime probe and the container collaborators.
"""
import io
import os
import tarfile
import tempfile

import pytest

from dfo.exceptions import (
    CommandNotFoundError,
    ContainerInspectionError,
    ProbeError,
    ScriptRetrievalError,
)
from dfo.MODELS.container_image import ContainerImageRef
from dfo.RUNNERS.environment_probe import RuntimeEnvironmentProbe


class FakeProbe(RuntimeEnvironmentProbe):
    """Probe answering from dictionaries instead of running which/ldd."""

    def __init__(self, paths=None, libraries=None, executables=None):
        self.paths = dict(paths or {})
        self.libraries = dict(libraries or {})
        # Names the extractor accepts; defaults to the resolvable ones
        self.executables = set(executables) if executables is not None else None
        self.resolve_calls = []
        self.closure_calls = []

    def resolve_path(self, command):
        self.resolve_calls.append(command)
        if command not in self.paths:
            raise CommandNotFoundError(command)
        return self.paths[command]

    def library_closure(self, binary_path):
        self.closure_calls.append(binary_path)
        libs = self.libraries.get(binary_path)
        if isinstance(libs, Exception):
            raise libs
        if libs is None:
            raise ProbeError(binary_path, "not a dynamic executable")
        return list(libs)

    def is_executable(self, command):
        if self.executables is not None:
            return command in self.executables
        return super().is_executable(command)


class FakeRetriever:
    """Stages script bodies held in memory as real temporary files."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.staged = []

    def copy_from_container(self, container_id, path):
        if path not in self.files:
            raise ScriptRetrievalError(f"Error copying {path}")
        fd, local_path = tempfile.mkstemp(prefix="entrypoint")
        with os.fdopen(fd, 'w') as f:
            f.write(self.files[path])
        self.staged.append(local_path)
        return local_path


class FakeInspector:
    """Container inspector over a fixed list of containers."""

    def __init__(self, images=None):
        self.images = list(images or [])
        self.client = None

    def list_containers(self):
        return [i.id for i in self.images]

    def inspect(self, container_id):
        for image in self.images:
            if image.id.startswith(container_id) or image.name == container_id:
                return image
        raise ContainerInspectionError(f"No such container: {container_id}")

    def list_images(self):
        return list(self.images)

    def first_container(self):
        if not self.images:
            raise ContainerInspectionError("No running containers found")
        return self.images[0]


class FakeDockerContainer:
    """Stand-in for docker.models.containers.Container."""

    def __init__(self, container_id, attrs=None, files=None, links=None):
        self.id = container_id
        self.attrs = attrs or {"Id": container_id, "Config": {}}
        self.files = files or {}
        self.links = links or {}

    def get_archive(self, path):
        buf = io.BytesIO()
        name = os.path.basename(path)
        with tarfile.open(fileobj=buf, mode="w") as tar:
            if path in self.links:
                info = tarfile.TarInfo(name)
                info.type = tarfile.SYMTYPE
                info.linkname = self.links[path]
                tar.addfile(info)
            elif path in self.files:
                data = self.files[path].encode()
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
            else:
                from docker.errors import NotFound
                raise NotFound(f"Could not find the file {path} in container")
        return iter([buf.getvalue()]), {"name": name}


class FakeContainerCollection:

    def __init__(self, containers):
        self._containers = containers

    def list(self):
        return list(self._containers)

    def get(self, container_id):
        from docker.errors import NotFound
        for c in self._containers:
            if c.id.startswith(container_id):
                return c
        raise NotFound(f"No such container: {container_id}")


class FakeDockerClient:

    def __init__(self, containers=None):
        self.containers = FakeContainerCollection(containers or [])
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def script_container():
    return ContainerImageRef(
        id="abc123def4567890",
        name="myapp:latest",
        entrypoint=["/docker-entrypoint.sh"],
        cmd=["myapp", "--serve"],
    )


@pytest.fixture
def binary_container():
    return ContainerImageRef(
        id="0123456789abcdef",
        name="nginx:1.25",
        entrypoint=[],
        cmd=["nginx", "-g", "daemon off;"],
    )
