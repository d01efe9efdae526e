"""Visibility engine.

Decides, for every conditionally visible field and page, whether it is shown,
and writes each decision to the visibility sink. Dependency values are
resolved through a fixed priority chain:

1. the variable store;
2. the engine's cache of raw field input;
3. the navigation controller's page-scoped variables;
4. verification flow states, for keys of the form ``<fieldId>_<variable>``.

The first source returning something other than ``None`` wins. A variable set
in the store therefore always beats a cached field value, which in turn beats
a page-scoped or flow-derived value, even when the cached value is stale.

Only the dependents of a changed key are re-evaluated; a batched store write
re-evaluates each dependent once.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple
import logging

from formflow.config import EngineSettings
from formflow.logic.conditions import combine, evaluate
from formflow.logic.events import (
    FIELD_VALUE_CHANGED,
    FLOW_STATE_CHANGED,
    PAGE_CHANGED,
    EventBus,
    FieldValueChanged,
    FlowStateChanged,
    PageChanged,
    VariableChanged,
)
from formflow.logic.field_variables import variables_for_field
from formflow.logic.flow_state import FlowStateStore, FlowStateTag
from formflow.logic.registry import DependencyRegistry
from formflow.logic.sink import VisibilitySink
from formflow.logic.variable_store import StoreEvent, VariableStore
from formflow.models.conditions import (
    ConditionGroup,
    ConditionPredicate,
    FieldCondition,
    PageConditionGroup,
)
from formflow.models.form_definition import FormDefinition
from formflow.models.visibility import ValidationReport

logger = logging.getLogger(__name__)


class ArtifactState:
    REGISTERED = "registered"
    VISIBLE = "evaluated_visible"
    HIDDEN = "evaluated_hidden"


class PageVariableSource(Protocol):
    def get_variable(self, name: str) -> Any: ...

    def set_variable(self, name: str, value: Any) -> None: ...

    def get_all_variables(self) -> Dict[str, Any]: ...


class VisibilityEngine:
    def __init__(
        self,
        store: VariableStore,
        sink: VisibilitySink,
        *,
        bus: Optional[EventBus] = None,
        flow_states: Optional[FlowStateStore] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.store = store
        self.sink = sink
        self.bus = bus or store.bus
        self.flow_states = flow_states if flow_states is not None else FlowStateStore(self.bus)
        self.settings = settings or EngineSettings()
        self.registry = DependencyRegistry()
        self.definition: Optional[FormDefinition] = None
        self._field_values: Dict[str, Any] = {}
        self._page_cache: Dict[str, bool] = {}
        self._field_states: Dict[str, str] = {}
        self._page_states: Dict[str, str] = {}
        self._page_variables: Optional[PageVariableSource] = None
        self._depth = 0
        self._unsubscribers: List[Callable[[], None]] = [
            store.subscribe(self._on_store_event),
            self.bus.subscribe(PAGE_CHANGED, self._on_page_changed),
            self.bus.subscribe(FLOW_STATE_CHANGED, self._on_flow_state_changed),
        ]

    # -- lifecycle ------------------------------------------------------------

    def attach_page_variables(self, source: Optional[PageVariableSource]) -> None:
        self._page_variables = source

    def load_form(self, definition: FormDefinition) -> None:
        """Rebuild the registry for a new definition and evaluate everything once."""
        self.definition = definition
        self._page_cache.clear()
        self._field_values.clear()
        self.registry.load_definition(definition)
        self._reset_states()
        self.evaluate_all()

    def dispose(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.registry.clear()
        self._page_cache.clear()
        self._field_values.clear()
        self._reset_states()
        self.definition = None

    def _reset_states(self) -> None:
        self._field_states = {c.field_id: ArtifactState.REGISTERED for c in self.registry.field_conditions()}
        self._page_states = {g.page_id: ArtifactState.REGISTERED for g in self.registry.page_groups()}

    # -- value resolution -----------------------------------------------------

    def resolve_value(self, depends_on: str) -> Any:
        value = self.store.get(depends_on)
        if value is None:
            value = self._field_values.get(depends_on)
        if value is None and self._page_variables is not None:
            value = self._page_variables.get_variable(depends_on)
        if value is None and self.settings.flow_key_separator in depends_on:
            value = self._flow_value(depends_on)
        return value

    def _flow_value(self, key: str) -> Any:
        field_id = key.rsplit(self.settings.flow_key_separator, 1)[0]
        for candidate in (key, field_id):
            flow = self.flow_states.get_flow_state(candidate)
            if flow is None:
                continue
            if flow.state == FlowStateTag.VARIABLE_SET:
                data = flow.data
                return data.get("value") if isinstance(data, Mapping) else data
            if flow.state in self.settings.completion_flow_states:
                return "true"
            return None
        return None

    # -- evaluation -----------------------------------------------------------

    def evaluate_predicate(self, predicate: ConditionPredicate) -> bool:
        return evaluate(self.resolve_value(predicate.depends_on), predicate.operator, predicate.comparand)

    def evaluate_condition_group(self, group: Optional[ConditionGroup]) -> bool:
        """AND/OR over a group's predicates; no group or no predicates is True."""
        if group is None or not group.conditions:
            return True
        results = [self.evaluate_predicate(c) for c in group.conditions]
        return combine(results, group.combinator)

    def evaluate_field(self, condition: FieldCondition) -> bool:
        visible = self.evaluate_predicate(condition)
        self._field_states[condition.field_id] = ArtifactState.VISIBLE if visible else ArtifactState.HIDDEN
        logger.debug(
            "visibility_engine.field_evaluated field_id=%s depends_on=%s visible=%s",
            condition.field_id,
            condition.depends_on,
            visible,
        )
        self.sink.set_field_visible(condition.field_id, visible)
        return visible

    def evaluate_page(self, group: PageConditionGroup) -> bool:
        visible = self.evaluate_condition_group(group)
        self._page_cache[group.page_id] = visible
        self._page_states[group.page_id] = ArtifactState.VISIBLE if visible else ArtifactState.HIDDEN
        logger.debug(
            "visibility_engine.page_evaluated page_id=%s combinator=%s visible=%s",
            group.page_id,
            group.combinator,
            visible,
        )
        self.sink.set_page_visible(group.page_id, visible)
        return visible

    def evaluate_all(self) -> None:
        def run() -> None:
            for condition in self.registry.field_conditions():
                self.evaluate_field(condition)
            for group in self.registry.page_groups():
                self.evaluate_page(group)

        self._guarded("evaluate_all", run)

    def evaluate_dependents(self, keys: Iterable[str]) -> Tuple[List[str], List[str]]:
        """Re-evaluate each artifact depending on any of `keys` exactly once.

        Returns the ids of the fields and pages that were evaluated.
        """
        fields: Dict[str, FieldCondition] = {}
        pages: Dict[str, PageConditionGroup] = {}
        for key in keys:
            dep_fields, dep_pages = self.registry.dependents_of(key)
            for condition in dep_fields:
                fields.setdefault(condition.field_id, condition)
            for group in dep_pages:
                pages.setdefault(group.page_id, group)

        def run() -> None:
            for condition in fields.values():
                self.evaluate_field(condition)
            for group in pages.values():
                self.evaluate_page(group)

        if not self._guarded("dependents", run):
            return [], []
        return list(fields), list(pages)

    def evaluate_page_conditions(self, current_index: int) -> None:
        """Re-evaluate the groups of the current page and every later page."""

        def run() -> None:
            for group in self.registry.page_groups():
                if group.page_index >= current_index:
                    self.evaluate_page(group)

        self._guarded("page_conditions", run)

    def _guarded(self, reason: str, run: Callable[[], None]) -> bool:
        # Bounds evaluation chains re-entered through sink or subscriber side effects
        if self._depth >= self.settings.max_reentrancy_depth:
            logger.error(
                "visibility_engine.reentrancy_limit reason=%s depth=%s",
                reason,
                self._depth,
            )
            return False
        self._depth += 1
        try:
            run()
        finally:
            self._depth -= 1
        return True

    # -- event handlers -------------------------------------------------------

    def _on_store_event(self, event: StoreEvent) -> None:
        keys = [event.name] if isinstance(event, VariableChanged) else event.names
        self.evaluate_dependents(keys)

    def _on_page_changed(self, event: PageChanged) -> None:
        self.evaluate_page_conditions(event.page_index)

    def _on_flow_state_changed(self, event: FlowStateChanged) -> None:
        prefix = event.key + self.settings.flow_key_separator
        keys = [k for k in self.registry.dependency_keys() if k == event.key or k.startswith(prefix)]
        if keys:
            self.evaluate_dependents(keys)

    # -- field input ----------------------------------------------------------

    def set_field_value(self, field_id: str, value: Any) -> None:
        """Record raw input for a field and re-evaluate what depends on it.

        Variables configured on the field are written with one batched store
        update and mirrored into the page-scoped variables.
        """
        self._field_values[field_id] = value
        field = self.definition.find_field(field_id) if self.definition is not None else None
        derived = variables_for_field(field, value)
        if derived:
            if self._page_variables is not None:
                for name, derived_value in derived.items():
                    self._page_variables.set_variable(name, derived_value)
            self.store.set_multiple(derived)
        self.evaluate_dependents([field_id])
        self.bus.publish(FIELD_VALUE_CHANGED, FieldValueChanged(field_id, value))

    def remember_field_values(self, values: Mapping[str, Any]) -> None:
        """Update the field value cache without triggering evaluation."""
        self._field_values.update(values)

    def field_values(self) -> Dict[str, Any]:
        return dict(self._field_values)

    # -- queries --------------------------------------------------------------

    def is_page_visible(self, page_id: str) -> bool:
        cached = self._page_cache.get(page_id)
        if cached is not None:
            return cached
        group = self.registry.page_group(page_id)
        if group is None:
            return True
        visible = self.evaluate_condition_group(group)
        self._page_cache[page_id] = visible
        return visible

    def is_field_visible(self, field_id: str) -> bool:
        return self._field_states.get(field_id) != ArtifactState.HIDDEN

    def visible_fields(self) -> List[str]:
        return [c.field_id for c in self.registry.field_conditions() if self.is_field_visible(c.field_id)]

    def field_visibility(self) -> Dict[str, bool]:
        if self.definition is None:
            return {}
        return {fid: self.is_field_visible(fid) for fid in self.definition.field_ids()}

    def page_visibility(self) -> Dict[str, bool]:
        if self.definition is None:
            return {}
        return {page.id: self.is_page_visible(page.id) for page in self.definition.pages}

    def artifact_states(self) -> Dict[str, Dict[str, str]]:
        return {"fields": dict(self._field_states), "pages": dict(self._page_states)}

    # -- validation -----------------------------------------------------------

    def validate(self) -> ValidationReport:
        """Report circular and dangling field dependencies."""
        errors: List[str] = []
        known = set(self._field_values) | set(self.store.get_all())
        if self.definition is not None:
            known.update(self.definition.field_ids())
        if self._page_variables is not None:
            known.update(self._page_variables.get_all_variables())
        for condition in self.registry.field_conditions():
            dep = condition.depends_on
            if dep not in known and self.resolve_value(dep) is None:
                errors.append(f"Field {condition.field_id} depends on non-existent field {dep}")
            if self._has_circular_dependency(condition.field_id):
                errors.append(f"Circular dependency detected for field {condition.field_id}")
        if errors:
            logger.warning("visibility_engine.validation_failed errors=%s", len(errors))
        return ValidationReport(valid=not errors, errors=errors)

    def _has_circular_dependency(self, field_id: str) -> bool:
        visited = {field_id}
        condition = self.registry.field_condition(field_id)
        current = condition.depends_on if condition is not None else None
        while current is not None:
            if current in visited:
                return True
            next_condition = self.registry.field_condition(current)
            if next_condition is None:
                return False
            visited.add(current)
            current = next_condition.depends_on
        return False

    # -- serialization --------------------------------------------------------

    def export_conditions(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return self.registry.export()

    def import_conditions(self, config: Mapping[str, Any]) -> None:
        self.registry.load_export(config)
        self._page_cache.clear()
        self._reset_states()
        self.evaluate_all()


__all__ = ["ArtifactState", "PageVariableSource", "VisibilityEngine"]
