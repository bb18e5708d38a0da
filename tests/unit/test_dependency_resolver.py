"""
Unit tests for the dependency closure aggregator.
"""
import os
import pytest
from conftest import FakeProbe, FakeRetriever
from dfo.exceptions import NoEntrypointError, ProbeError, ScriptRetrievalError
from dfo.MODELS.container_image import ContainerImageRef, EntrypointKind
from dfo.MODELS.resolver_config import ResolverConfig
from dfo.RUNNERS.dependency_resolver import DependencyResolver

SCRIPT = """#!/bin/sh
# start app
curl -sSL http://x | sh
exec myapp --flag
"""

LIBC = "/lib/x86_64-linux-gnu/libc.so.6"
LIBZ = "/lib/x86_64-linux-gnu/libz.so.1"
LIBCURL = "/lib/x86_64-linux-gnu/libcurl.so.4"
LOADER = "/lib64/ld-linux-x86-64.so.2"


def _resolver(probe, files=None, **config):
    retriever = FakeRetriever(files or {})
    return DependencyResolver(probe, retriever, config=ResolverConfig(**config)), retriever


class TestScriptEntrypoint:
    """Tests for script entrypoints."""

    def test_scenario(self, script_container):
        probe = FakeProbe(
            paths={"curl": "/usr/bin/curl"},
            libraries={"/usr/bin/curl": [LIBCURL, LIBC, LOADER]},
            executables={"curl", "exec", "myapp"},
        )
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": SCRIPT})
        manifest = resolver.resolve(script_container)

        assert manifest.kind == EntrypointKind.SCRIPT
        assert [(c.name, c.path) for c in manifest.commands] == [("curl", "/usr/bin/curl")]
        assert manifest.unresolved == ["exec", "myapp"]
        assert [lib.path for lib in manifest.libraries] == [LIBCURL, LIBC, LOADER]

    def test_repeated_command_yields_one_reference(self, script_container):
        probe = FakeProbe(paths={"curl": "/usr/bin/curl"}, libraries={"/usr/bin/curl": [LIBC]})
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "curl a\ncurl b\ncurl c\n"})
        manifest = resolver.resolve(script_container)
        assert [c.name for c in manifest.commands] == ["curl"]
        assert probe.resolve_calls.count("curl") == 2  # search path check, then resolution

    def test_libraries_shared_between_commands_appear_once(self, script_container):
        probe = FakeProbe(
            paths={"curl": "/usr/bin/curl", "gzip": "/bin/gzip"},
            libraries={"/usr/bin/curl": [LIBCURL, LIBC], "/bin/gzip": [LIBZ, LIBC]},
        )
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "curl x | gzip\n"})
        manifest = resolver.resolve(script_container)
        assert [lib.path for lib in manifest.libraries] == [LIBCURL, LIBC, LIBZ]
        libc = next(lib for lib in manifest.libraries if lib.path == LIBC)
        assert libc.required_by == ["/usr/bin/curl", "/bin/gzip"]

    def test_same_path_for_two_names(self, script_container):
        probe = FakeProbe(
            paths={"gzip": "/bin/gzip", "gunzip": "/bin/gzip"},
            libraries={"/bin/gzip": [LIBC]},
        )
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "gzip a\ngunzip b\n"})
        manifest = resolver.resolve(script_container)
        assert [c.name for c in manifest.commands] == ["gzip", "gunzip"]
        assert manifest.paths == ["/bin/gzip"]
        assert probe.closure_calls == ["/bin/gzip"]

    def test_script_without_commands(self, script_container):
        probe = FakeProbe()
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "#!/bin/sh\n# nothing\n"})
        manifest = resolver.resolve(script_container)
        assert manifest.commands == []
        assert manifest.libraries == []
        assert probe.closure_calls == []

    def test_staged_script_is_removed(self, script_container):
        probe = FakeProbe(paths={"curl": "/usr/bin/curl"}, libraries={"/usr/bin/curl": []})
        resolver, retriever = _resolver(probe, {"/docker-entrypoint.sh": "curl x\n"})
        resolver.resolve(script_container)
        assert len(retriever.staged) == 1
        assert not os.path.exists(retriever.staged[0])

    def test_staged_script_is_removed_on_failure(self, script_container):
        probe = FakeProbe(paths={"curl": "/usr/bin/curl"})
        resolver, retriever = _resolver(probe, {"/docker-entrypoint.sh": "curl x\n"})

        class BrokenExtractor:
            def parse(self, path):
                raise RuntimeError("boom")

        resolver.extractor = BrokenExtractor()
        with pytest.raises(RuntimeError):
            resolver.resolve(script_container)
        assert not os.path.exists(retriever.staged[0])

    def test_unreadable_script(self, script_container):
        probe = FakeProbe()
        resolver, retriever = _resolver(probe, {"/docker-entrypoint.sh": ""})

        class UnreadableExtractor:
            def parse(self, path):
                raise PermissionError(path)

        resolver.extractor = UnreadableExtractor()
        with pytest.raises(ScriptRetrievalError):
            resolver.resolve(script_container)

    def test_retrieval_failure(self, script_container):
        resolver, _ = _resolver(FakeProbe(), {})
        with pytest.raises(ScriptRetrievalError):
            resolver.resolve(script_container)

    def test_introspection_failure_aborts(self, script_container):
        probe = FakeProbe(
            paths={"busybox": "/bin/busybox"},
            libraries={"/bin/busybox": ProbeError("/bin/busybox", "not a dynamic executable")},
        )
        resolver, retriever = _resolver(probe, {"/docker-entrypoint.sh": "busybox sh\n"})
        with pytest.raises(ProbeError):
            resolver.resolve(script_container)
        assert not os.path.exists(retriever.staged[0])


class TestBinaryEntrypoint:
    """Tests for binary entrypoints."""

    def test_no_library_closure_by_default(self, binary_container):
        probe = FakeProbe(paths={"nginx": "/usr/sbin/nginx"}, libraries={"/usr/sbin/nginx": [LIBC]})
        resolver, retriever = _resolver(probe)
        manifest = resolver.resolve(binary_container)
        assert manifest.kind == EntrypointKind.BINARY
        assert [(c.name, c.path) for c in manifest.commands] == [("nginx", "/usr/sbin/nginx")]
        assert manifest.libraries == []
        assert probe.closure_calls == []
        assert retriever.staged == []

    def test_library_closure_when_enabled(self, binary_container):
        probe = FakeProbe(paths={"nginx": "/usr/sbin/nginx"}, libraries={"/usr/sbin/nginx": [LIBC]})
        resolver, _ = _resolver(probe, compute_library_closure_for_binaries=True)
        manifest = resolver.resolve(binary_container)
        assert [lib.path for lib in manifest.libraries] == [LIBC]

    def test_unresolvable_binary(self, binary_container):
        resolver, _ = _resolver(FakeProbe())
        manifest = resolver.resolve(binary_container)
        assert manifest.commands == []
        assert manifest.unresolved == ["nginx"]

    def test_lookup_timeout_aborts(self, binary_container):
        class TimingOutProbe(FakeProbe):
            def resolve_path(self, command):
                raise ProbeError(command, "which timed out")

        resolver, _ = _resolver(TimingOutProbe())
        with pytest.raises(ProbeError):
            resolver.resolve(binary_container)

    def test_no_entrypoint(self):
        resolver, _ = _resolver(FakeProbe())
        with pytest.raises(NoEntrypointError):
            resolver.resolve(ContainerImageRef(id="deadbeef", name="scratch"))

    def test_unresolved_kind(self):
        container = ContainerImageRef(id="deadbeef", name="odd", entrypoint=[""])
        probe = FakeProbe()
        resolver, _ = _resolver(probe)
        manifest = resolver.resolve(container)
        assert manifest.kind == EntrypointKind.UNRESOLVED
        assert manifest.commands == []
        assert probe.resolve_calls == []


class TestRecursiveClosure:
    """Tests for worklist library traversal."""

    def _probe(self):
        return FakeProbe(
            paths={"curl": "/usr/bin/curl"},
            libraries={
                "/usr/bin/curl": [LIBCURL, LIBC],
                LIBCURL: [LIBZ, LIBC],
                LIBZ: [LIBC],
                LIBC: [LOADER],
                LOADER: ProbeError(LOADER, "statically linked"),
            },
        )

    def test_flat_by_default(self, script_container):
        probe = self._probe()
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "curl x\n"})
        manifest = resolver.resolve(script_container)
        assert [lib.path for lib in manifest.libraries] == [LIBCURL, LIBC]
        assert probe.closure_calls == ["/usr/bin/curl"]

    def test_recursive(self, script_container):
        probe = self._probe()
        resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "curl x\n"},
                                recursive_library_closure=True)
        manifest = resolver.resolve(script_container)
        assert [lib.path for lib in manifest.libraries] == [LIBCURL, LIBC, LIBZ, LOADER]
        # every path is introspected exactly once
        assert sorted(probe.closure_calls) == sorted(["/usr/bin/curl", LIBCURL, LIBC, LIBZ, LOADER])


def test_resolver_reusable_across_containers(script_container, binary_container):
    probe = FakeProbe(
        paths={"curl": "/usr/bin/curl", "nginx": "/usr/sbin/nginx"},
        libraries={"/usr/bin/curl": [LIBC]},
    )
    resolver, _ = _resolver(probe, {"/docker-entrypoint.sh": "curl x\n"})
    first = resolver.resolve(script_container)
    second = resolver.resolve(binary_container)
    again = resolver.resolve(script_container)
    assert [c.name for c in second.commands] == ["nginx"]
    assert first == again
