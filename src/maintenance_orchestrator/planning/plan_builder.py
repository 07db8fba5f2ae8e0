#!/usr/bin/env python3
"""
Operation plan builder for Maintenance Orchestrator
Turns a configuration of toggles into an ordered, immutable plan of operations
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Tuple
import logging

from .catalog import (
    Banner,
    OperationCatalog,
    OperationCategory,
    PLAN_CATEGORY_ORDER,
    default_catalog,
)

logger = logging.getLogger(__name__)

Configuration = Mapping[str, Any]


@dataclass(frozen=True)
class Operation:
    """One atomic, labeled unit of host commands"""
    id: str
    human_label: str
    category: OperationCategory
    command_text: str
    pause: bool = False

    @property
    def is_banner(self) -> bool:
        return self.category is OperationCategory.BANNER

    @property
    def statements(self) -> List[str]:
        return self.command_text.splitlines()


@dataclass(frozen=True)
class Plan:
    """Ordered sequence of operations framed by start and end banners"""
    operations: Tuple[Operation, ...]

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def __getitem__(self, index: int) -> Operation:
        return self.operations[index]

    @property
    def steps(self) -> Tuple[Operation, ...]:
        """Operations between the banners"""
        return tuple(op for op in self.operations if not op.is_banner)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def ids(self) -> List[str]:
        return [op.id for op in self.operations]


def _has_sleep(template: Tuple[str, ...]) -> bool:
    return any(line.lstrip().startswith("Start-Sleep") for line in template)


def _banner_operation(banner: Banner) -> Operation:
    return Operation(
        id=banner.id,
        human_label=banner.label,
        category=OperationCategory.BANNER,
        command_text="\n".join(banner.template),
        pause=_has_sleep(banner.template),
    )


class PlanBuilder:
    """Builds plans from a configuration; pure, no I/O"""

    def __init__(self, catalog: Optional[OperationCatalog] = None):
        self.catalog = catalog or default_catalog

    def build(self, configuration: Configuration) -> Plan:
        """Build the plan for a configuration.

        Order depends only on category and catalog declaration order, never
        on the iteration order of ``configuration``.
        """
        for name in sorted(k for k in configuration if k not in self.catalog):
            logger.warning(f"Ignoring unknown option '{name}'")

        operations = [_banner_operation(self.catalog.start_banner)]

        for category in PLAN_CATEGORY_ORDER:
            for option in self.catalog.in_category(category):
                if option.name not in configuration:
                    continue
                value = configuration[option.name]
                template = option.template_for(value)
                if template is None:
                    if option.is_enum and value not in (None, False):
                        logger.warning(
                            f"Ignoring option '{option.name}': {value!r} is not one of {option.choices}"
                        )
                    continue
                operations.append(Operation(
                    id=option.name,
                    human_label=option.label,
                    category=option.category,
                    command_text="\n".join(template),
                    pause=_has_sleep(template),
                ))

        operations.append(_banner_operation(self.catalog.end_banner))

        plan = Plan(tuple(operations))
        logger.debug(f"Built plan with {len(plan.steps)} operation(s): {plan.ids()}")
        return plan


def build(configuration: Configuration, catalog: Optional[OperationCatalog] = None) -> Plan:
    """Build a plan using the given (or default) catalog"""
    return PlanBuilder(catalog).build(configuration)
