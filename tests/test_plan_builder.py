"""Unit tests for the operation catalog and plan builder."""

import logging

import pytest

from maintenance_orchestrator.planning.catalog import (
    OperationCatalog,
    OperationCategory,
    OperationOption,
    default_catalog,
    is_truthy,
)
from maintenance_orchestrator.planning.plan_builder import PlanBuilder, build


class TestPlanBuilder:
    """Plan construction from configurations."""

    def test_empty_configuration_has_only_banners(self):
        plan = build({})

        assert plan.ids() == ["banner.start", "banner.end"]
        assert len(plan) == 2
        assert plan.is_empty
        assert plan.steps == ()

    def test_removal_and_privacy_scenario(self):
        plan = build({"remove_onedrive": True, "disable_telemetry": True})

        assert plan.ids() == ["banner.start", "remove_onedrive", "disable_telemetry", "banner.end"]
        assert [op.category for op in plan] == [
            OperationCategory.BANNER,
            OperationCategory.REMOVAL,
            OperationCategory.PRIVACY,
            OperationCategory.BANNER,
        ]
        assert plan[1].human_label == "Remove OneDrive"

    def test_order_ignores_mapping_order(self):
        configuration = {
            "optimize_network_throttling": True,
            "disable_telemetry": True,
            "remove_calculator": True,
            "remove_onedrive": True,
            "disable_game_dvr": True,
        }
        reversed_configuration = dict(reversed(list(configuration.items())))

        first = build(configuration)
        second = build(reversed_configuration)

        assert first == second
        assert first.ids() == [
            "banner.start",
            "remove_onedrive",
            "remove_calculator",
            "disable_telemetry",
            "disable_game_dvr",
            "optimize_network_throttling",
            "banner.end",
        ]

    def test_build_is_deterministic(self):
        configuration = {name: True for name in default_catalog.names()}

        assert build(configuration) == build(configuration)

    def test_false_values_are_not_selected(self):
        plan = build({
            "remove_onedrive": False,
            "remove_cortana": "false",
            "remove_xbox": 0,
            "remove_skype": "off",
            "remove_weather": None,
        })

        assert plan.is_empty

    def test_string_true_values_are_selected(self):
        plan = build({"remove_onedrive": "yes", "disable_location": "1"})

        assert plan.ids()[1:-1] == ["remove_onedrive", "disable_location"]

    def test_unknown_options_are_logged_and_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            plan = build({"remove_everything": True, "remove_onedrive": True})

        assert plan.ids()[1:-1] == ["remove_onedrive"]
        assert "remove_everything" in caplog.text

    def test_enum_option_uses_chosen_template(self):
        service_only = build({"windows_update": "service"})
        with_firewall = build({"windows_update": "service_and_firewall"})

        assert "Stop-Service -Name wuauserv" in service_only[1].command_text
        assert "New-NetFirewallRule" not in service_only[1].command_text
        assert "New-NetFirewallRule" in with_firewall[1].command_text

    def test_invalid_enum_value_is_not_selected(self, caplog):
        with caplog.at_level(logging.WARNING):
            plan = build({"windows_update": "everything"})

        assert plan.is_empty
        assert "windows_update" in caplog.text

    def test_banners_pause_and_steps_do_not(self):
        plan = build({"remove_onedrive": True})

        assert plan[0].pause
        assert plan[-1].pause
        assert not plan[1].pause

    def test_configuration_is_not_mutated(self):
        configuration = {"remove_onedrive": True, "unknown": True}
        snapshot = dict(configuration)

        build(configuration)

        assert configuration == snapshot

    def test_injected_catalog(self):
        catalog = OperationCatalog(options=(
            OperationOption("tune_b", "Tune B", OperationCategory.PERFORMANCE, {True: ("Write-Host 'b'",)}),
            OperationOption("strip_a", "Strip A", OperationCategory.REMOVAL, {True: ("Write-Host 'a'",)}),
        ))

        plan = PlanBuilder(catalog).build({"tune_b": True, "strip_a": True, "remove_onedrive": True})

        assert plan.ids() == ["banner.start", "strip_a", "tune_b", "banner.end"]
        assert plan[1].command_text == "Write-Host 'a'"


class TestOperationCatalog:
    """Catalog integrity."""

    def test_default_catalog_names_are_unique(self):
        names = default_catalog.names()

        assert len(names) == len(set(names))
        assert "remove_onedrive" in default_catalog
        assert default_catalog.get("windows_update").choices == ("service", "service_and_firewall")

    def test_rejects_duplicate_names(self):
        option = OperationOption("dup", "Dup", OperationCategory.PRIVACY, {True: ("x",)})

        with pytest.raises(ValueError):
            OperationCatalog(options=(option, option))

    def test_rejects_banner_category(self):
        option = OperationOption("bad", "Bad", OperationCategory.BANNER, {True: ("x",)})

        with pytest.raises(ValueError):
            OperationCatalog(options=(option,))

    @pytest.mark.parametrize("value, expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("No", False),
        (" off ", False),
        ("", False),
        (1, True),
        (0, False),
    ])
    def test_is_truthy(self, value, expected):
        assert is_truthy(value) is expected
