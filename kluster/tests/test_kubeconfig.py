import pytest
import yaml

from kluster.errors import MissingClusterAddress, ParseFailed
from kluster.models import ClusterIdentity
from kluster.modules.kubeconfig import KubeconfigDocument, KubeconfigSynchronizer, MergeOutcome

SECTIONS = ("clusters", "users", "contexts")


def load_yaml(path):
    with open(path) as f:
        return yaml.safe_load(f)


def load_yaml_text(text):
    return yaml.safe_load(text)


def test_placeholder_rewrite(testdata):
    document = KubeconfigDocument.load(testdata / "k3s.yaml")

    assert document.rewrite_placeholder("demo1", "10.0.0.5")

    for section in SECTIONS:
        assert document.names(section) == ["demo1"]
    assert document.server_of("demo1") == "https://10.0.0.5:6443"
    assert document.current_context == "demo1"
    context = load_yaml_text(document.to_text())["contexts"][0]["context"]
    assert context == {"cluster": "demo1", "user": "demo1"}


def test_placeholder_rewrite_is_idempotent(testdata):
    document = KubeconfigDocument.load(testdata / "multi.yaml")
    before = document.to_text()

    assert not document.rewrite_placeholder("demo3", "10.0.0.9")
    assert document.to_text() == before


def test_to_text_keeps_all_top_level_keys():
    data = load_yaml_text(KubeconfigDocument.from_text("apiVersion: v1\nkind: Config\n").to_text())
    assert data["clusters"] == []
    assert data["users"] == []
    assert data["contexts"] == []
    assert data["extensions"] == []
    assert data["current-context"] == ""
    assert data["preferences"] == {}


def test_malformed_document_is_rejected(testdata):
    with pytest.raises(ParseFailed):
        KubeconfigDocument.load(testdata / "malformed.yaml")
    with pytest.raises(ParseFailed):
        KubeconfigDocument.from_text("clusters: [\n")


def test_document_merge_overrides_on_conflict():
    base = KubeconfigDocument({
        "clusters": [{"name": "a", "cluster": {"server": "https://1.1.1.1:6443"}}],
        "current-context": "a",
        "preferences": {"colors": True},
    })
    other = KubeconfigDocument({
        "clusters": [
            {"name": "a", "cluster": {"server": "https://2.2.2.2:6443"}},
            {"name": "b", "cluster": {"server": "https://3.3.3.3:6443"}},
        ],
        "current-context": "b",
        "preferences": {},
    })

    merged = base.merge(other)

    assert merged.cluster_names() == ["a", "b"]
    assert merged.server_of("a") == "https://2.2.2.2:6443"
    assert merged.current_context == "b"
    assert merged.as_dict()["preferences"] == {"colors": True}
    # inputs are untouched
    assert base.server_of("a") == "https://1.1.1.1:6443"


def test_first_merge_creates_kubeconfig(kubeconfig_path, k3s_fragment, demo1):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)

    assert synchronizer.merge(demo1, k3s_fragment) is MergeOutcome.CREATED

    document = synchronizer.load()
    for section in SECTIONS:
        assert document.names(section) == ["demo1"]
    assert document.server_of("demo1") == "https://192.168.10.1:6443"
    assert "default" not in kubeconfig_path.read_text().split()


def test_second_cluster_is_merged(kubeconfig_path, k3s_fragment, second_fragment, demo1, demo2):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    synchronizer.merge(demo1, k3s_fragment)

    assert synchronizer.merge(demo2, second_fragment) is MergeOutcome.MERGED

    document = synchronizer.load()
    for section in SECTIONS:
        assert document.names(section) == ["demo1", "demo2"]
    assert document.server_of("demo1") == "https://192.168.10.1:6443"
    assert document.server_of("demo2") == "https://192.168.10.2:6443"
    assert document.current_context == "demo2"
    assert document.count("extensions") == 0
    assert document.count("preferences.extensions") == 0


def test_merge_is_idempotent(kubeconfig_path, k3s_fragment, second_fragment, demo1, demo2):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    synchronizer.merge(demo1, k3s_fragment)
    synchronizer.merge(demo2, second_fragment)
    first = kubeconfig_path.read_bytes()

    assert synchronizer.merge(demo2, second_fragment) is MergeOutcome.SKIPPED

    assert kubeconfig_path.read_bytes() == first
    document = synchronizer.load()
    for section in SECTIONS:
        assert document.count(section) == 2


def test_merge_into_existing_multi_cluster_file(kubeconfig_path, testdata, k3s_fragment):
    kubeconfig_path.parent.mkdir(parents=True)
    kubeconfig_path.write_text((testdata / "multi.yaml").read_text())
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    demo3 = ClusterIdentity(name="demo3", ip_addresses=["192.168.10.3"])

    assert synchronizer.merge(demo3, k3s_fragment) is MergeOutcome.MERGED

    document = synchronizer.load()
    assert document.cluster_names() == ["demo1", "demo2", "demo3"]
    assert document.extension_names() == ["demo1"]
    assert document.count("preferences.extensions") == 1


def test_renamed_placeholder_replaces_stale_entries(kubeconfig_path, k3s_fragment, demo1):
    kubeconfig_path.parent.mkdir(parents=True)
    # a user and context survived from an earlier kluster, but not its cluster
    kubeconfig_path.write_text(
        "apiVersion: v1\nkind: Config\nclusters: []\n"
        "users:\n- name: demo1\n  user: {token: stale}\n"
        "contexts:\n- name: demo1\n  context: {cluster: demo1, user: demo1}\n"
        "current-context: demo1\n"
    )
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)

    assert synchronizer.merge(demo1, k3s_fragment) is MergeOutcome.MERGED

    document = synchronizer.load()
    assert document.user_names() == ["demo1"]
    assert document.context_names() == ["demo1"]
    assert "stale" not in kubeconfig_path.read_text()


def test_merge_requires_an_address(kubeconfig_path, k3s_fragment):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    with pytest.raises(MissingClusterAddress):
        synchronizer.merge(ClusterIdentity(name="demo1"), k3s_fragment)
    assert not kubeconfig_path.exists()


def test_merge_leaves_malformed_kubeconfig_untouched(kubeconfig_path, testdata, k3s_fragment, demo1):
    kubeconfig_path.parent.mkdir(parents=True)
    original = (testdata / "malformed.yaml").read_text()
    kubeconfig_path.write_text(original)

    with pytest.raises(ParseFailed):
        KubeconfigSynchronizer(kubeconfig_path).merge(demo1, k3s_fragment)
    assert kubeconfig_path.read_text() == original


def test_merge_of_known_cluster_skips_before_reading_fragment(kubeconfig_path, k3s_fragment, demo1):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    synchronizer.merge(demo1, k3s_fragment)
    before = kubeconfig_path.read_bytes()

    assert synchronizer.merge(demo1, ["clusters: [unterminated"]) is MergeOutcome.SKIPPED
    assert kubeconfig_path.read_bytes() == before


def test_merge_rejects_malformed_fragment(kubeconfig_path, k3s_fragment, demo1, demo2):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    synchronizer.merge(demo1, k3s_fragment)
    before = kubeconfig_path.read_bytes()

    with pytest.raises(ParseFailed):
        synchronizer.merge(demo2, ["clusters: [unterminated"])
    assert kubeconfig_path.read_bytes() == before


def test_context_cluster():
    document = KubeconfigDocument({
        "contexts": [{"name": "dev", "context": {"cluster": "demo1", "user": "demo1"}}],
    })

    assert document.context_cluster("dev") == "demo1"
    assert document.context_cluster("prod") is None


def test_merge_into_empty_file(kubeconfig_path, k3s_fragment, demo1):
    kubeconfig_path.parent.mkdir(parents=True)
    kubeconfig_path.write_text("\n")

    assert KubeconfigSynchronizer(kubeconfig_path).merge(demo1, k3s_fragment) is MergeOutcome.CREATED


def test_remove_after_merge(kubeconfig_path, k3s_fragment, second_fragment, demo1, demo2):
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)
    synchronizer.merge(demo1, k3s_fragment)
    synchronizer.merge(demo2, second_fragment)

    assert synchronizer.remove("demo2") == 3

    document = synchronizer.load()
    for section in SECTIONS:
        assert document.names(section) == ["demo1"]
    assert document.current_context == ""


def test_remove_clears_extensions_and_current_context(kubeconfig_path, testdata):
    kubeconfig_path.parent.mkdir(parents=True)
    kubeconfig_path.write_text((testdata / "multi.yaml").read_text())
    synchronizer = KubeconfigSynchronizer(kubeconfig_path)

    # current context points at demo2, it is cleared anyway
    assert synchronizer.remove("demo1") == 5

    document = synchronizer.load()
    for section in SECTIONS:
        assert document.names(section) == ["demo2"]
    assert document.count("extensions") == 0
    assert document.count("preferences.extensions") == 0
    assert document.current_context == ""
    data = load_yaml(kubeconfig_path)
    assert set(data) >= {"clusters", "users", "contexts", "current-context", "extensions", "preferences"}


def test_remove_malformed_kubeconfig_is_fatal(kubeconfig_path, testdata):
    kubeconfig_path.parent.mkdir(parents=True)
    original = (testdata / "malformed.yaml").read_text()
    kubeconfig_path.write_text(original)

    with pytest.raises(ParseFailed):
        KubeconfigSynchronizer(kubeconfig_path).remove("demo1")
    assert kubeconfig_path.read_text() == original


def test_default_path_follows_kubeconfig_env(tmp_path, monkeypatch):
    target = tmp_path / "custom" / "kubeconfig"
    monkeypatch.setenv("KUBECONFIG", str(target))

    synchronizer = KubeconfigSynchronizer()

    assert synchronizer.path == target
    assert target.parent.is_dir()
