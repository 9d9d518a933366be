"""Tests for resources/copies.py module."""

import base64

import pytest

from openshift_pipeline.errors import NotFoundError
from openshift_pipeline.resources.copies import copy_secrets_and_config_maps


def _secret(name: str, data: dict[str, str], annotations: dict[str, str] | None = None) -> dict:
    return {
        "kind": "Secret",
        "metadata": {"name": name, "namespace": "demo", "annotations": annotations or {}},
        "data": data,
    }


class TestCopySecretsAndConfigMaps:
    """Tests for copy_secrets_and_config_maps function."""

    async def test_copies_secret_data(self, cluster):
        """Should take data from the referenced secret."""
        cluster.add(_secret("template-db", {"password": "c2VjcmV0"}))
        resources = [
            {
                "kind": "Secret",
                "metadata": {"name": "db-pr-1", "annotations": {"as-copy-of": "template-db"}},
                "stringData": {"metadata.name": "placeholder"},
            }
        ]
        await copy_secrets_and_config_maps(cluster, resources, "demo")

        assert resources[0]["data"] == {"password": "c2VjcmV0"}
        assert resources[0]["stringData"] == {"metadata.name": "db-pr-1"}

    async def test_copies_config_map(self, cluster):
        """Should take data from the referenced config map."""
        cluster.add(
            {
                "kind": "ConfigMap",
                "metadata": {"name": "settings", "namespace": "demo"},
                "data": {"LEVEL": "info"},
            }
        )
        resources = [
            {
                "kind": "ConfigMap",
                "metadata": {"name": "settings-pr-1", "annotations": {"as-copy-of": "settings"}},
                "data": {"LEVEL": "debug"},
            }
        ]
        await copy_secrets_and_config_maps(cluster, resources, "demo")
        assert resources[0]["data"] == {"LEVEL": "info"}
        assert resources[0]["stringData"] == {}

    async def test_preserves_existing_field(self, cluster):
        """Should keep the preserved field from the secret's current version."""
        cluster.add(
            _secret("template-db", {"password": "bmV3", "user": "YXBw"}),
            _secret("db-pr-1", {"password": "b2xk"}),
        )
        resources = [
            {
                "kind": "Secret",
                "metadata": {
                    "name": "db-pr-1",
                    "annotations": {
                        "as-copy-of": "template-db",
                        "as-copy-of/preserve": "password",
                    },
                },
            }
        ]
        await copy_secrets_and_config_maps(cluster, resources, "demo")
        assert resources[0]["data"] == {"password": "b2xk", "user": "YXBw"}

    async def test_route_tls(self, cluster):
        """Should merge decoded secret data into the route's TLS block."""
        encoded = base64.b64encode(b"-----BEGIN CERTIFICATE-----").decode("ascii")
        cluster.add(_secret("certs", {"certificate": encoded}))
        resources = [
            {
                "kind": "Route",
                "metadata": {"name": "web", "annotations": {"tls/secretName": "certs"}},
                "spec": {"tls": {"termination": "edge"}},
            }
        ]
        await copy_secrets_and_config_maps(cluster, resources, "demo")
        assert resources[0]["spec"]["tls"] == {
            "termination": "edge",
            "certificate": "-----BEGIN CERTIFICATE-----",
        }

    async def test_missing_source(self, cluster):
        """Should raise NotFoundError when the source does not exist."""
        resources = [
            {
                "kind": "Secret",
                "metadata": {"name": "db", "annotations": {"as-copy-of": "nope"}},
            }
        ]
        with pytest.raises(NotFoundError):
            await copy_secrets_and_config_maps(cluster, resources, "demo")

    async def test_unannotated_untouched(self, cluster):
        """Should leave resources without copy annotations alone."""
        resources = [{"kind": "Secret", "metadata": {"name": "db"}, "data": {"a": "Yg=="}}]
        await copy_secrets_and_config_maps(cluster, resources, "demo")
        assert resources[0]["data"] == {"a": "Yg=="}
        assert "stringData" not in resources[0]
        assert cluster.get_calls == []
