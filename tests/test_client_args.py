"""Tests for client/args.py module."""

from openshift_pipeline.client.args import build_common_args, to_command_args


class TestToCommandArgs:
    """Tests for to_command_args function."""

    def test_scalar_values(self):
        """Should render --key=value flags in mapping order."""
        assert to_command_args({"output": "json", "replicas": 3}) == [
            "--output=json",
            "--replicas=3",
        ]

    def test_booleans_lowercase(self):
        """Should render booleans the way oc expects."""
        assert to_command_args({"wait": True, "follow": False}) == [
            "--wait=true",
            "--follow=false",
        ]

    def test_lists_repeat_flag(self):
        """Should repeat the flag for every list item."""
        assert to_command_args({"selector": ["a=1", "b=2"]}) == [
            "--selector=a=1",
            "--selector=b=2",
        ]

    def test_mapping_renders_name_value(self):
        """Should render nested mappings as --key=name=value."""
        assert to_command_args({"env": {"A": "1", "B": "2"}}) == [
            "--env=A=1",
            "--env=B=2",
        ]

    def test_none_skipped(self):
        """Should skip options whose value is None."""
        assert to_command_args({"namespace": None, "output": "name"}) == ["--output=name"]

    def test_empty(self):
        """Should return no flags for empty or missing options."""
        assert to_command_args(None) == []
        assert to_command_args({}) == []


class TestBuildCommonArgs:
    """Tests for build_common_args function."""

    def test_namespace_first(self):
        """Should emit the namespace before the verb."""
        args = build_common_args("get", ["bc/app"], {"output": "json"}, None, {"namespace": "demo"})
        assert args == ["--namespace=demo", "get", "bc/app", "--output=json"]

    def test_override_wins(self):
        """Should merge options global < user < override."""
        args = build_common_args(
            "get",
            "is/app",
            {"namespace": "user", "output": "yaml"},
            {"output": "json"},
            {"namespace": "global"},
        )
        assert args == ["--namespace=user", "get", "is/app", "--output=json"]

    def test_none_override_keeps_lower(self):
        """A None override should not clear a lower precedence value."""
        args = build_common_args("get", None, None, {"namespace": None}, {"namespace": "demo"})
        assert args == ["--namespace=demo", "get"]

    def test_no_namespace(self):
        """Should omit the namespace flag when none is known."""
        assert build_common_args("project", None, {"short": True}) == ["project", "--short=true"]
