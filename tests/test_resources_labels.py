"""Tests for resources/labels.py module."""

from openshift_pipeline.resources.labels import (
    apply_recommended_labels,
    get_annotation,
    get_label,
    set_annotation,
    set_label,
)


class TestLabelHelpers:
    """Tests for label and annotation accessors."""

    def test_get_missing(self):
        """Should return None for unset labels, creating no error."""
        assert get_label({"metadata": {}}, "app") is None
        assert get_annotation({}, "as-copy-of") is None

    def test_set_single(self):
        """Should set one label."""
        resource = {"metadata": {"name": "web"}}
        set_label(resource, "app", "shop")
        assert resource["metadata"]["labels"] == {"app": "shop"}

    def test_set_mapping(self):
        """Should merge a mapping into existing labels."""
        resource = {"metadata": {"labels": {"tier": "web"}}}
        set_label(resource, {"app": "shop", "env-name": "dev"})
        assert resource["metadata"]["labels"] == {
            "tier": "web",
            "app": "shop",
            "env-name": "dev",
        }

    def test_null_annotations(self):
        """Should replace a null annotations field."""
        resource = {"metadata": {"annotations": None}}
        set_annotation(resource, "tls/secretName", "certs")
        assert get_annotation(resource, "tls/secretName") == "certs"


class TestApplyRecommendedLabels:
    """Tests for apply_recommended_labels function."""

    def test_environment_labels(self):
        """Should label per-environment resources with full identity."""
        resources = [{"kind": "DeploymentConfig", "metadata": {"name": "web"}}]
        apply_recommended_labels(resources, "shop", "pr", "42")
        assert resources[0]["metadata"]["labels"] == {
            "app": "shop-pr-42",
            "app-name": "shop",
            "env-name": "pr",
            "env-id": "42",
        }

    def test_shared_resources(self):
        """Should give shared resources only the application name."""
        resources = [
            {"kind": "ImageStream", "metadata": {"name": "web", "labels": {"shared": "true"}}}
        ]
        apply_recommended_labels(resources, "shop", "pr", "42")
        assert resources[0]["metadata"]["labels"] == {"shared": "true", "app-name": "shop"}

    def test_instance_override(self):
        """Should use an explicit instance as the app label."""
        resources = [{"kind": "Service", "metadata": {"name": "web"}}]
        result = apply_recommended_labels(resources, "shop", "dev", "1", instance="shop-dev")
        assert result is resources
        assert get_label(resources[0], "app") == "shop-dev"
