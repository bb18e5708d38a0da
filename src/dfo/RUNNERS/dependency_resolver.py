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
Dependency closure for a container's entrypoint: the command binaries it
invokes and the shared libraries those binaries load.
"""
import logging
import os
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from ..exceptions import CommandNotFoundError, ProbeError, ScriptRetrievalError
from ..MODELS.container_image import ContainerImageRef, EntrypointKind
from ..MODELS.manifest import (
    CommandReference,
    LibraryDependency,
    ResolutionManifest,
    ResolutionStatus,
)
from ..MODELS.resolver_config import ResolverConfig
from ..PARSERS.script_parser import ScriptCommandExtractor
from .entrypoint_classifier import EntrypointClassifier, SuffixPolicy
from .environment_probe import RuntimeEnvironmentProbe

logger = logging.getLogger(__name__)


class DependencyResolver:
    """
    Resolves the files an entrypoint needs, one container per call.

    All accumulated state lives in locals of :meth:`resolve`, so one instance
    can be reused across containers.
    """
    def __init__(self,
                 probe: RuntimeEnvironmentProbe,
                 retriever,
                 config: Optional[ResolverConfig] = None,
                 classifier: Optional[EntrypointClassifier] = None,
                 extractor: Optional[ScriptCommandExtractor] = None):
        """
        :param probe: Locates commands and lists their libraries.
        :param retriever: Object with ``copy_from_container(container_id, path) -> str``.
        :param config: Resolver policy. Defaults to ResolverConfig().
        :param classifier: Entrypoint classifier. Defaults to a suffix policy from config.
        :param extractor: Script command extractor. Defaults to one backed by ``probe``.
        """
        self.probe = probe
        self.retriever = retriever
        self.config = config or ResolverConfig()
        self.classifier = classifier or EntrypointClassifier(SuffixPolicy(self.config.script_suffix))
        self.extractor = extractor or ScriptCommandExtractor(probe=probe)

    def resolve(self, container: ContainerImageRef) -> ResolutionManifest:
        """
        Computes the resolution manifest for a container.

        :param container: The inspected container.
        :return: Resolved commands and their library closure.
        :raises NoEntrypointError: If the container has no entrypoint or cmd.
        :raises ScriptRetrievalError: If a script entrypoint cannot be fetched.
        :raises ProbeError: If library introspection fails.
        """
        logger.info("Resolving container %s (%s)", container.short_id, container.name)
        kind, token = self.classifier.classify(container)

        if kind == EntrypointKind.SCRIPT:
            with self.staged_script(container, token) as script_path:
                try:
                    names = self.extractor.parse(script_path)
                except OSError as e:
                    raise ScriptRetrievalError(f"Error reading staged script {script_path}: {e}") from e
            logger.info("Commands extracted from %s: %s", token, names)
        elif kind == EntrypointKind.BINARY:
            names = [token]
        else:
            logger.warning("Entrypoint %r could not be classified, nothing to resolve", token)
            names = []

        commands, unresolved = self.resolve_commands(names)
        paths = [c.path for c in commands]
        # Binary paths may coincide for distinct names (hard links, aliases)
        paths = list(dict.fromkeys(paths))
        logger.info("Command full paths: %s", paths)

        libraries: List[LibraryDependency] = []
        if kind == EntrypointKind.SCRIPT or (
            kind == EntrypointKind.BINARY and self.config.compute_library_closure_for_binaries
        ):
            libraries = self.library_closure(paths)
            logger.info("Libraries: %s", [lib.path for lib in libraries])

        manifest = ResolutionManifest(
            container=container,
            kind=kind,
            commands=commands,
            libraries=libraries,
            unresolved=unresolved,
        )
        logger.info("Total commands found: %d, libraries found: %d",
                    len(manifest.commands), len(manifest.libraries))
        return manifest

    @contextmanager
    def staged_script(self, container: ContainerImageRef, path: str) -> Iterator[str]:
        """
        Copies a script out of the container and removes the local copy on exit.
        """
        local_path = self.retriever.copy_from_container(container.id, path)
        logger.info("Staged entrypoint script %s at %s", path, local_path)
        try:
            yield local_path
        finally:
            try:
                os.remove(local_path)
            except FileNotFoundError:
                pass

    def resolve_commands(self, names: List[str]) -> Tuple[List[CommandReference], List[str]]:
        """
        Looks up each name once. Names that fail to resolve are logged and skipped.

        :return: Resolved references and the names that did not resolve.
        """
        resolved: List[CommandReference] = []
        unresolved: List[str] = []
        seen = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            try:
                path = self.probe.resolve_path(name)
            except CommandNotFoundError as e:
                logger.error("Failed to get full path for command %s: %s", name, e)
                unresolved.append(name)
                continue
            logger.info("Found command full path: %s", path)
            resolved.append(CommandReference(name=name, path=path, status=ResolutionStatus.RESOLVED))
        return resolved, unresolved

    def library_closure(self, paths: List[str]) -> List[LibraryDependency]:
        """
        Collects the shared libraries of every binary path.

        Each binary is introspected once. With ``recursive_library_closure``
        the discovered libraries are introspected too, until no new path
        turns up.

        :raises ProbeError: If introspection of a command binary fails.
        """
        required_by: Dict[str, List[str]] = {}
        worklist = list(paths)
        visited = set()

        while worklist:
            path = worklist.pop(0)
            if path in visited:
                continue
            visited.add(path)
            is_root = path in paths
            try:
                found = self.probe.library_closure(path)
            except ProbeError:
                if is_root:
                    logger.error("Failed to find libraries for %s", path)
                    raise
                # The dynamic loader itself and a few others refuse introspection
                logger.warning("Skipping library introspection for %s", path)
                continue

            for lib in found:
                owners = required_by.setdefault(lib, [])
                if path not in owners:
                    owners.append(path)
                if self.config.recursive_library_closure and lib not in visited:
                    worklist.append(lib)

        return [
            LibraryDependency(path=lib, required_by=owners)
            for lib, owners in required_by.items()
        ]
