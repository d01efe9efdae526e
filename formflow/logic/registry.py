"""Dependency registry: condition records extracted from a form definition.

Records are held in two arenas keyed by field id and page id. A reverse
index maps each dependency key to the artifacts that read it, so a change to
one key touches only its dependents.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from pydantic import TypeAdapter

from formflow.models.conditions import ConditionRecord, FieldCondition, PageConditionGroup
from formflow.models.form_definition import FormDefinition

logger = logging.getLogger(__name__)

_RECORD_ADAPTER: TypeAdapter[ConditionRecord] = TypeAdapter(ConditionRecord)


class DependencyRegistry:
    def __init__(self) -> None:
        self._fields: Dict[str, FieldCondition] = {}
        self._pages: Dict[str, PageConditionGroup] = {}
        self._field_dependents: Dict[str, List[str]] = {}
        self._page_dependents: Dict[str, List[str]] = {}

    # -- registration -------------------------------------------------------

    def clear(self) -> None:
        self._fields.clear()
        self._pages.clear()
        self._field_dependents.clear()
        self._page_dependents.clear()

    def register_field(self, condition: FieldCondition) -> None:
        if condition.field_id in self._fields:
            self._unindex(self._field_dependents, condition.field_id)
        self._fields[condition.field_id] = condition
        self._index(self._field_dependents, condition.depends_on, condition.field_id)

    def register_page(self, group: PageConditionGroup) -> None:
        if group.page_id in self._pages:
            self._unindex(self._page_dependents, group.page_id)
        self._pages[group.page_id] = group
        for key in group.depends_on_keys():
            self._index(self._page_dependents, key, group.page_id)

    def load_definition(self, definition: FormDefinition) -> None:
        """Rebuild from a form definition's enabled conditional configs."""
        self.clear()
        for page_index, page in enumerate(definition.pages):
            for field in page.fields:
                cv = field.conditional_visibility
                if cv is None or not cv.enabled:
                    continue
                self.register_field(
                    FieldCondition(
                        field_id=field.id,
                        page_index=page_index,
                        depends_on=cv.depends_on,
                        operator=cv.condition,
                        comparand=cv.value,
                        depends_on_page=cv.depends_on_page if cv.depends_on_page is not None else page_index,
                    )
                )
            pcv = page.conditional_visibility
            if pcv is not None and pcv.enabled:
                self.register_page(
                    PageConditionGroup(
                        page_id=page.id,
                        page_index=page_index,
                        conditions=list(pcv.conditions),
                        combinator=pcv.logic,
                    )
                )
        logger.info(
            "registry.loaded form_id=%s field_conditions=%s page_conditions=%s",
            definition.id,
            len(self._fields),
            len(self._pages),
        )

    # -- lookup -------------------------------------------------------------

    def field_condition(self, field_id: str) -> Optional[FieldCondition]:
        return self._fields.get(field_id)

    def page_group(self, page_id: str) -> Optional[PageConditionGroup]:
        return self._pages.get(page_id)

    def field_conditions(self) -> List[FieldCondition]:
        return list(self._fields.values())

    def page_groups(self) -> List[PageConditionGroup]:
        return list(self._pages.values())

    def dependents_of(self, key: str) -> Tuple[List[FieldCondition], List[PageConditionGroup]]:
        fields = [self._fields[fid] for fid in self._field_dependents.get(key, [])]
        pages = [self._pages[pid] for pid in self._page_dependents.get(key, [])]
        return fields, pages

    def dependency_keys(self) -> List[str]:
        return list({*self._field_dependents.keys(), *self._page_dependents.keys()})

    # -- serialization ------------------------------------------------------

    def export(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            "fieldConditions": {
                fid: c.model_dump(mode="json", by_alias=True) for fid, c in self._fields.items()
            },
            "pageConditions": {
                pid: g.model_dump(mode="json", by_alias=True) for pid, g in self._pages.items()
            },
        }

    def load_export(self, config: Mapping[str, Any]) -> None:
        """Replace the registry contents with a previously exported config.

        Entries lacking their own id take it from the mapping key. Every entry
        is validated before anything is replaced, so an invalid config leaves
        the registry untouched.
        """
        fields: List[FieldCondition] = []
        pages: List[PageConditionGroup] = []
        for fid, raw in (config.get("fieldConditions") or {}).items():
            payload = {"fieldId": fid, **dict(raw), "kind": "field"}
            fields.append(_RECORD_ADAPTER.validate_python(payload))
        for pid, raw in (config.get("pageConditions") or {}).items():
            payload = {"pageId": pid, **dict(raw), "kind": "page"}
            pages.append(_RECORD_ADAPTER.validate_python(payload))
        self.clear()
        for condition in fields:
            self.register_field(condition)
        for group in pages:
            self.register_page(group)

    def __len__(self) -> int:
        return len(self._fields) + len(self._pages)

    # -- index helpers ------------------------------------------------------

    @staticmethod
    def _index(index: Dict[str, List[str]], key: str, artifact_id: str) -> None:
        ids = index.setdefault(key, [])
        if artifact_id not in ids:
            ids.append(artifact_id)

    @staticmethod
    def _unindex(index: Dict[str, List[str]], artifact_id: str) -> None:
        for key in list(index.keys()):
            ids = index[key]
            if artifact_id in ids:
                ids.remove(artifact_id)
            if not ids:
                del index[key]


__all__ = ["DependencyRegistry"]
