"""
Shared fixtures for the bot script builder test suite.
"""
import sys
import os
import pytest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Set env vars before any imports that read them
os.environ["ENVIRONMENT"] = "dev"


@pytest.fixture
def graph_store():
    """Fresh GraphStore; editor ids are issued as "1", "2", ..."""
    from botscript.graph.store import GraphStore
    return GraphStore()


@pytest.fixture
def registry():
    """Fresh NodeTypeRegistry with the built-in schema table."""
    from botscript.compiler.registry import NodeTypeRegistry
    return NodeTypeRegistry()


@pytest.fixture
def compiler(registry):
    """ScriptCompiler issuing id_1, id_2, ... on every run."""
    from botscript.compiler.compiler import ScriptCompiler
    from botscript.ids import CounterIdGenerator
    return ScriptCompiler(registry=registry, id_generator=CounterIdGenerator())


@pytest.fixture
def strict_compiler(registry):
    """ScriptCompiler that rejects cycles instead of emitting back references."""
    from botscript.compiler.compiler import ScriptCompiler
    from botscript.ids import CounterIdGenerator
    return ScriptCompiler(registry=registry, id_generator=CounterIdGenerator(), cycle_policy="reject")


@pytest.fixture
def emitter():
    """Compact DocumentEmitter."""
    from botscript.compiler.emitter import DocumentEmitter
    return DocumentEmitter()


@pytest.fixture
def session(compiler):
    """EditorSession rooted at "1" with deterministic compiled ids."""
    from botscript.session import EditorSession
    return EditorSession(compiler=compiler, root_id="1")
