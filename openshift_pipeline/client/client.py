"""oc command line client.

This module wraps the operations the pipeline core consumes:
- Batched object retrieval per namespace
- apply/create/replace/delete of object lists
- Triggering and cancelling builds, setting build definition environment
- Processing templates into object lists
- Starting watch streams
- Opaque pass-through for anything else
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from openshift_pipeline.client.args import build_common_args
from openshift_pipeline.client.runner import CommandResult, run_command, spawn_command
from openshift_pipeline.client.watch import WatchStream
from openshift_pipeline.resources.identity import IMAGE_STREAM_TAG, ResourceRef

logger = logging.getLogger(__name__)


def unwrap_list(obj: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Return the items of a ``List`` object, or the object itself."""
    if obj.get("kind") == "List":
        return list(obj.get("items") or [])
    return [dict(obj)]


def wrap_list(objects: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Wrap objects into a ``List`` suitable for ``oc apply -f -``."""
    return {"apiVersion": "v1", "kind": "List", "metadata": {}, "items": list(objects)}


def split_names(output: str, namespace: str | None) -> list[str]:
    """Turn ``--output=name`` lines into namespaced identifiers."""
    names = [line.strip() for line in output.splitlines() if line.strip()]
    if namespace:
        return [f"{namespace}/{name}" for name in names]
    return names


class OpenShiftClient:
    """Thin asynchronous wrapper over the oc executable.

    Args:
        namespace: Default namespace for every command.
        cwd: Working directory for oc invocations.
        executable: Name or path of the oc binary.
    """

    def __init__(
        self,
        namespace: str | None = None,
        cwd: Path | None = None,
        executable: str = "oc",
    ) -> None:
        self._namespace = namespace
        self._cwd = cwd
        self.executable = executable

    @property
    def namespace(self) -> str | None:
        """Default namespace of this client."""
        return self._namespace

    @property
    def cwd(self) -> Path | None:
        """Working directory of this client."""
        return self._cwd

    def build_args(
        self,
        verb: str,
        verb_args: Sequence[str] | str | None = None,
        user_args: Mapping[str, Any] | None = None,
        override_args: Mapping[str, Any] | None = None,
    ) -> list[str]:
        """Compose a full oc command line."""
        args = build_common_args(
            verb,
            verb_args,
            user_args,
            override_args,
            global_args={"namespace": self._namespace},
        )
        return [self.executable, *args]

    async def _run(self, args: list[str], input: str | None = None) -> CommandResult:
        return await run_command(args, input=input, cwd=self._cwd)

    async def raw(
        self,
        verb: str,
        verb_args: Sequence[str] | str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> CommandResult:
        """Run an arbitrary oc verb and return its captured result."""
        return await self._run(self.build_args(verb, verb_args, options))

    async def current_namespace(self) -> str:
        """Return the namespace of the current oc project."""
        result = await self._run([self.executable, "project", "--short=true"])
        return result.stdout.strip()

    async def get(
        self,
        namespace: str | None,
        names: Sequence[str],
        options: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch objects of one namespace in a single request.

        Absent objects are skipped rather than failing the request, so the
        caller decides whether they are required.

        Args:
            namespace: Namespace to read from (None for the current project).
            names: ``kind/name`` strings.
            options: Extra oc options.

        Returns:
            Objects found.
        """
        if not names:
            return []
        args = self.build_args(
            "get",
            list(names),
            options,
            {"namespace": namespace, "output": "json", "ignore-not-found": True},
        )
        result = await self._run(args)
        if not result.stdout.strip():
            return []
        return unwrap_list(json.loads(result.stdout))

    async def get_jsonpath(
        self,
        verb_args: Sequence[str] | str,
        template: str,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Run ``oc get`` with a jsonpath template and return raw stdout."""
        args = self.build_args("get", verb_args, options, {"output": f"jsonpath={template}"})
        result = await self._run(args)
        return result.stdout

    async def _object_action(
        self,
        verb: str,
        objects: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
    ) -> list[str]:
        if not objects:
            return []
        args = self.build_args(verb, ["-f", "-"], options, {"output": "name"})
        result = await self._run(args, input=json.dumps(wrap_list(objects)))
        namespace = (options or {}).get("namespace") or self._namespace
        return split_names(result.stdout, namespace)

    async def apply(
        self, objects: Sequence[Mapping[str, Any]], options: Mapping[str, Any] | None = None
    ) -> list[str]:
        """Apply objects and return their identifiers."""
        return await self._object_action("apply", objects, options)

    async def create(
        self, objects: Sequence[Mapping[str, Any]], options: Mapping[str, Any] | None = None
    ) -> list[str]:
        """Create objects and return their identifiers."""
        return await self._object_action("create", objects, options)

    async def replace(
        self, objects: Sequence[Mapping[str, Any]], options: Mapping[str, Any] | None = None
    ) -> list[str]:
        """Replace objects and return their identifiers."""
        return await self._object_action("replace", objects, options)

    async def delete(
        self, objects: Sequence[Mapping[str, Any]], options: Mapping[str, Any] | None = None
    ) -> list[str]:
        """Delete objects and return their identifiers."""
        return await self._object_action("delete", objects, options)

    async def start_build(
        self,
        ref: ResourceRef,
        options: Mapping[str, Any] | None = None,
    ) -> list[str]:
        """Start a build of a build definition.

        Args:
            ref: Build definition reference.
            options: Extra options, e.g. ``wait`` or ``from-archive``.

        Returns:
            Namespaced identifiers of the started build(s).
        """
        args = self.build_args(
            "start-build",
            [ref.name_ref],
            options,
            {"namespace": ref.namespace, "output": "name"},
        )
        logger.info("Starting new build: %s", " ".join(args))
        result = await self._run(args)
        return split_names(result.stdout, ref.namespace)

    async def cancel_build(
        self,
        refs: Sequence[str] | str,
        options: Mapping[str, Any] | None = None,
    ) -> list[str]:
        """Cancel running or pending builds.

        Args:
            refs: Build names, or ``bc/<name>`` to cancel every build of a
                build definition.
            options: Extra options, e.g. ``state``.

        Returns:
            Names of the cancelled builds as reported by oc.
        """
        args = self.build_args("cancel-build", refs, options)
        result = await self._run(args)
        # oc prints "<build> cancelled" per build
        names = "\n".join(line.split()[0] for line in result.stdout.splitlines() if line.strip())
        namespace = (options or {}).get("namespace") or self._namespace
        return split_names(names, namespace)

    async def process(
        self,
        template: Path | str,
        params: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Render a local template file into its objects.

        Args:
            template: Path of the template file.
            params: Template parameter values, passed as ``--param=K=V``.
            options: Extra oc options.

        Returns:
            Objects of the processed template, ready to be applied.
        """
        args = self.build_args(
            "process",
            ["-f", str(template)],
            {"param": dict(params) if params else None, **(options or {})},
            {"output": "json"},
        )
        result = await self._run(args)
        return unwrap_list(json.loads(result.stdout))

    async def set_env(self, ref: ResourceRef, env: Mapping[str, str]) -> None:
        """Set environment variables on an object, overwriting existing ones."""
        await self.raw(
            "set",
            ["env", ref.name_ref],
            {"namespace": ref.namespace, "env": dict(env), "overwrite": True},
        )

    async def image_digest(self, namespace: str, tag_name: str) -> str:
        """Return the image name (digest) an image-stream tag points at."""
        output = await self.get_jsonpath(
            [f"{IMAGE_STREAM_TAG}/{tag_name}"],
            "{.image.metadata.name}",
            {"namespace": namespace},
        )
        return output.strip()

    async def watch(
        self,
        verb_args: Sequence[str] | str,
        options: Mapping[str, Any] | None = None,
    ) -> WatchStream:
        """Start ``oc get --watch`` and return its output stream."""
        args = self.build_args("get", verb_args, options, {"watch": True})
        process = await spawn_command(args, cwd=self._cwd)
        return WatchStream(process, args=args)


__all__ = ["OpenShiftClient", "split_names", "unwrap_list", "wrap_list"]
