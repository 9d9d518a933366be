"""In-memory stand-ins for the oc client and git, plus object factories."""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

from openshift_pipeline.client.client import split_names
from openshift_pipeline.errors import ExecutionError
from openshift_pipeline.resources.identity import (
    BUILD,
    IMAGE_STREAM,
    ResourceRef,
    parse_ref,
    ref_of,
)


def image_stream(name: str, namespace: str = "demo") -> dict[str, Any]:
    """Create an empty image stream object."""
    return {
        "kind": "ImageStream",
        "metadata": {"name": name, "namespace": namespace},
        "status": {"tags": []},
    }


def build_config(
    name: str,
    output: str,
    inputs: list[str] | None = None,
    namespace: str = "demo",
    source_type: str = "Git",
    context_dir: str | None = None,
) -> dict[str, Any]:
    """Create a source-strategy build definition.

    The first input becomes the strategy base image, the others source images.
    """
    inputs = inputs or []
    strategy: dict[str, Any] = {"env": []}
    if inputs:
        strategy["from"] = {"kind": "ImageStreamTag", "name": inputs[0]}
    source: dict[str, Any] = {"type": source_type}
    if context_dir is not None:
        source["contextDir"] = context_dir
    if len(inputs) > 1:
        source["images"] = [
            {"from": {"kind": "ImageStreamTag", "name": name_}, "paths": []}
            for name_ in inputs[1:]
        ]
    return {
        "kind": "BuildConfig",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "source": source,
            "strategy": {"type": "Source", "sourceStrategy": strategy},
            "output": {"to": {"kind": "ImageStreamTag", "name": output}},
        },
    }


def deployment_config(
    name: str,
    replicas: int = 1,
    ready: int | None = None,
    available: bool = True,
    namespace: str = "demo",
) -> dict[str, Any]:
    """Create a deployment object with ``ready`` replicas up."""
    ready = replicas if ready is None else ready
    return {
        "kind": "DeploymentConfig",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"replicas": replicas},
        "status": {
            "replicas": replicas,
            "readyReplicas": ready,
            "availableReplicas": ready,
            "unavailableReplicas": replicas - ready,
            "conditions": [
                {"type": "Available", "status": "True" if available else "False"}
            ],
        },
    }


class FakeWatchStream:
    """Replays scripted chunks; callables run in between to change the cluster."""

    def __init__(self, events: list[str | Callable[[], None]]) -> None:
        self._events = list(events)
        self.terminated = False
        self.consumed = 0

    def __aiter__(self):
        return self._chunks()

    async def _chunks(self):
        for event in self._events:
            await asyncio.sleep(0)
            self.consumed += 1
            if callable(event):
                event()
            else:
                yield event

    async def terminate(self) -> None:
        self.terminated = True

    async def __aenter__(self) -> FakeWatchStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.terminate()


class FakeCluster:
    """In-memory replacement for OpenShiftClient.

    Builds complete immediately: starting one stores a Build, pushes an image
    carrying the build definition's recorded environment onto the output
    stream, and moves the output tag to it.
    """

    def __init__(self, namespace: str = "demo") -> None:
        self._namespace = namespace
        self.objects: dict[str, dict[str, Any]] = {}
        self.digests: dict[str, str] = {}
        self.env: dict[str, dict[str, str]] = {}
        self.get_calls: list[tuple[str | None, list[str]]] = []
        self.started: list[str] = []
        self.start_options: list[dict[str, Any]] = []
        self.applied: list[dict[str, Any]] = []
        self.snapshots: list[str] = []
        self.watch_events: list[str | Callable[[], None]] = []
        self.watches: list[FakeWatchStream] = []
        self.fail_builds: set[str] = set()
        self._counter = 0

    @property
    def namespace(self) -> str:
        return self._namespace

    def add(self, *objects: dict[str, Any]) -> None:
        for obj in objects:
            self.objects[ref_of(obj, self._namespace).key] = obj

    async def current_namespace(self) -> str:
        return self._namespace

    async def get(
        self,
        namespace: str | None,
        names: list[str],
        options: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        self.get_calls.append((namespace, list(names)))
        await asyncio.sleep(0)
        found = []
        for name in names:
            obj = self.objects.get(parse_ref(name, namespace or self._namespace).key)
            if obj is not None:
                found.append(copy.deepcopy(obj))
        return found

    async def get_jsonpath(self, verb_args, template, options=None) -> str:
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0] if self.snapshots else ""

    async def apply(self, objects, options=None) -> list[str]:
        self.applied.extend(objects)
        names = [f"{o['kind'].lower()}/{o['metadata']['name']}" for o in objects]
        return split_names("\n".join(names), (options or {}).get("namespace"))

    async def image_digest(self, namespace: str, tag_name: str) -> str:
        return self.digests.get(f"{namespace}/{tag_name}", "")

    async def set_env(self, ref: ResourceRef, env: dict[str, str]) -> None:
        self.env.setdefault(ref.key, {}).update(env)

    async def start_build(self, ref: ResourceRef, options=None) -> list[str]:
        await asyncio.sleep(0)
        if ref.key in self.fail_builds:
            raise ExecutionError(["oc", "start-build", ref.name_ref], 1, stderr="boom")
        self._counter += 1
        self.started.append(ref.key)
        self.start_options.append(dict(options or {}))

        bc = self.objects[ref.key]
        ns = ref.namespace
        output = bc["spec"]["output"]["to"]["name"]
        stream_name, _, tag_name = output.partition(":")
        tag_name = tag_name or "latest"
        build_name = f"{ref.name}-{self._counter}"
        digest = f"sha256:{self._counter:064x}"

        self.add(
            {
                "kind": "Build",
                "metadata": {"name": build_name, "namespace": ns},
                "status": {"phase": "Complete", "output": {"to": {"imageDigest": digest}}},
            }
        )
        env_lines = [f"{k}={v}" for k, v in self.env.get(ref.key, {}).items()]
        env_lines += [f"OPENSHIFT_BUILD_NAME={build_name}", f"OPENSHIFT_BUILD_NAMESPACE={ns}"]
        self.add(
            {
                "kind": "ImageStreamImage",
                "metadata": {"name": f"{stream_name}@{digest}", "namespace": ns},
                "image": {"dockerImageMetadata": {"Config": {"Env": env_lines}}},
            }
        )
        stream = self.objects[ResourceRef(ns, IMAGE_STREAM, stream_name).key]
        tags = stream.setdefault("status", {}).setdefault("tags", [])
        tag = next((t for t in tags if t["tag"] == tag_name), None)
        if tag is None:
            tag = {"tag": tag_name, "items": []}
            tags.append(tag)
        tag["items"].insert(0, {"image": digest})
        self.digests[f"{ns}/{stream_name}:{tag_name}"] = digest
        return [ResourceRef(ns, BUILD, build_name).key]

    async def watch(self, verb_args, options=None) -> FakeWatchStream:
        stream = FakeWatchStream(self.watch_events)
        self.watches.append(stream)
        return stream


class FakeRepository:
    """Git stand-in returning one revision per context directory."""

    def __init__(self, revisions: dict[str | None, str] | None = None) -> None:
        self.revisions = revisions or {}
        self.cwd: Path | None = None
        self.calls: list[str | None] = []

    async def revision(self, path: str | None) -> str:
        self.calls.append(path)
        return self.revisions.get(path, "tree-root")

    async def toplevel(self) -> Path:
        return Path("/work")


