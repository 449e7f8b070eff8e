from pathlib import Path

import pytest

from kluster.models import ClusterIdentity
from kluster.utils import read_lines

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def testdata():
    return TESTDATA


@pytest.fixture
def k3s_fragment():
    return read_lines(TESTDATA / "k3s.yaml")


@pytest.fixture
def second_fragment():
    return read_lines(TESTDATA / "k3s-second.yaml")


@pytest.fixture
def demo1():
    return ClusterIdentity(name="demo1", ip_addresses=["192.168.10.1"])


@pytest.fixture
def demo2():
    return ClusterIdentity(name="demo2", ip_addresses=["192.168.10.2", "10.0.0.1"])


@pytest.fixture
def kubeconfig_path(tmp_path):
    return tmp_path / "kube" / "config"


@pytest.fixture
def info_payload():
    """``multipass info demo1 --format=json`` output."""
    return {
        "errors": [],
        "info": {
            "demo1": {
                "image_release": "20.04 LTS",
                "ipv4": ["192.168.64.5", "10.42.0.0"],
                "memory": {"total": 4125478912, "used": 1032404992},
                "state": "Running",
            }
        },
    }


@pytest.fixture
def list_payload():
    """``multipass list --format=json`` output."""
    return {
        "list": [
            {"ipv4": ["192.168.64.7"], "name": "demo2", "release": "20.04 LTS", "state": "Running"},
            {"ipv4": [], "name": "demo1", "release": "20.04 LTS", "state": "Stopped"},
        ]
    }
