"""Shared pytest fixtures for all tests."""

import os

import pytest
from fastapi.testclient import TestClient

from receiver.main import create_app
from receiver.transfer_manager import TransferManager


@pytest.fixture
def shared_dir(tmp_path):
    """
    Directory that receives reassembled files.
    """
    path = tmp_path / 'shared'
    path.mkdir()
    return path


@pytest.fixture
def chunk_root(tmp_path):
    """
    Root for per-transfer chunk directories.
    """
    path = tmp_path / 'chunks'
    path.mkdir()
    return path


@pytest.fixture
def manager(shared_dir, chunk_root):
    """
    TransferManager writing into temporary directories.
    """
    return TransferManager(shared_path=shared_dir, temp_path=chunk_root)


@pytest.fixture
def app(shared_dir, chunk_root):
    """
    Receiver app with the idle sweeper disabled.
    """
    return create_app(
        shared_path=str(shared_dir),
        temp_path=str(chunk_root),
        idle_timeout_seconds=0,
    )


@pytest.fixture
def client(app):
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def sample_bytes():
    """
    Random payload of 10 000 bytes.
    """
    return os.urandom(10_000)

