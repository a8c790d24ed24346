"""Ordered set of provisioner declarations for one configuration scope."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional

from vmconf.config.base import ConfigPayload
from vmconf.provisioner import RUN_POLICIES, ConfigBlock, ProvisionerDeclaration
from vmconf.registry import TypeRegistry

logger = logging.getLogger(__name__)

# before/after may target every other provisioner instead of a single name.
ORDERING_KEYWORDS = frozenset({"each", "all"})


def _merge_payloads(
    base: Optional[ConfigPayload], override: Optional[ConfigPayload]
) -> Optional[ConfigPayload]:
    if base is None:
        return override.clone() if override is not None else None
    if override is None:
        return base.clone()
    return base.merge(override)


class ProvisionerCollection:
    """Provisioners declared in one scope, in declaration order."""

    def __init__(
        self,
        declarations: Optional[Iterable[ProvisionerDeclaration]] = None,
        *,
        registry: Optional[TypeRegistry] = None,
    ) -> None:
        self._registry = registry
        self._declarations: list[ProvisionerDeclaration] = list(declarations or [])

    def __iter__(self) -> Iterator[ProvisionerDeclaration]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)

    def ids(self) -> list[str]:
        return [declaration.id for declaration in self._declarations]

    def get(self, name: str) -> Optional[ProvisionerDeclaration]:
        for declaration in self._declarations:
            if declaration.name == name:
                return declaration
        return None

    def provision(
        self,
        name: str,
        *,
        kind: Optional[str] = None,
        run: Optional[str] = None,
        preserve_order: Optional[bool] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
        block: Optional[ConfigBlock] = None,
        options: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> ProvisionerDeclaration:
        """
        Declare or reconfigure a provisioner.

        ``provision("shell", inline=...)`` declares an anonymous provisioner
        of kind ``shell``. ``provision("web", kind="shell", ...)`` declares a
        named one; repeating the call with the same name accumulates more
        configuration onto the existing declaration.
        """
        declaration_name: Optional[str] = None
        declaration_kind = name
        if kind is not None:
            declaration_name = name
            declaration_kind = kind

        declaration = self.get(declaration_name) if declaration_name else None
        if declaration is None:
            declaration = ProvisionerDeclaration(
                declaration_name, declaration_kind, registry=self._registry
            )
            declaration.before = before
            declaration.after = after
            self._declarations.append(declaration)
        elif declaration.kind != declaration_kind:
            logger.warning(
                "Provisioner '%s' redeclared as '%s'; keeping '%s'",
                declaration_name,
                declaration_kind,
                declaration.kind,
            )

        if preserve_order is not None:
            declaration.preserve_order = bool(preserve_order)
        if run is not None:
            declaration.run = run  # type: ignore[assignment]

        values: dict[str, Any] = dict(options or {})
        values.update(kwargs)
        declaration.add_config(values, block=block)
        return declaration

    def merge(self, other: "ProvisionerCollection") -> "ProvisionerCollection":
        """Layer ``other`` (a child scope) over this collection."""
        remaining = list(other._declarations)
        merged: list[ProvisionerDeclaration] = []

        for base in self._declarations:
            index = next(
                (i for i, item in enumerate(remaining) if item.id == base.id), None
            )
            if index is None:
                merged.append(base.clone())
                continue

            combined = remaining[index].clone()
            if combined.kind == base.kind:
                combined.config = _merge_payloads(base.config, remaining[index].config)
                if combined.run is None:
                    combined.run = base.run
            else:
                logger.debug(
                    "Provisioner '%s' changed kind from '%s' to '%s'; replacing",
                    base.id,
                    base.kind,
                    combined.kind,
                )

            if combined.preserve_order:
                remaining.pop(index)
                merged.append(combined)
            else:
                remaining[index] = combined

        merged.extend(item.clone() for item in remaining)
        return ProvisionerCollection(merged, registry=other._registry or self._registry)

    def finalize(self) -> None:
        for declaration in self._declarations:
            declaration.finalize()

    def validate(
        self,
        root_path: Optional[Path] = None,
        *,
        include_unknown: bool = True,
    ) -> dict[str, list[str]]:
        """
        Collect validation errors keyed by declaration id.

        Args:
            root_path: Directory relative host paths are resolved against
            include_unknown: Report provisioners whose kind is not registered

        Returns:
            Mapping of declaration id to error messages; empty when valid
        """
        names = {declaration.name for declaration in self._declarations if declaration.name}
        report: dict[str, list[str]] = {}

        for declaration in self._declarations:
            errors: list[str] = []
            if declaration.invalid:
                if include_unknown:
                    errors.append(f"Provisioner '{declaration.kind}' not found.")
            elif declaration.config is not None:
                errors.extend(declaration.config.validate_config(root_path))

            if declaration.run is not None and declaration.run not in RUN_POLICIES:
                errors.append(
                    f"Invalid run value '{declaration.run}'. "
                    f"Expected one of: {', '.join(RUN_POLICIES)}"
                )

            for label, reference in (("before", declaration.before), ("after", declaration.after)):
                if reference is None or reference in ORDERING_KEYWORDS:
                    continue
                if reference == declaration.name:
                    errors.append(f"Provisioner cannot run {label} itself.")
                elif reference not in names:
                    errors.append(
                        f"Provisioner '{reference}' referenced by `{label}` does not exist."
                    )

            if declaration.before is not None and declaration.after is not None:
                errors.append("Only one of `before` or `after` may be set.")

            if errors:
                report[declaration.id] = errors
        return report


__all__ = ["ORDERING_KEYWORDS", "ProvisionerCollection"]
