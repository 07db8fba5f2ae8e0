#!/usr/bin/env python3
"""
Operation catalog for Maintenance Orchestrator
Static table of maintenance options and the fixed script templates they map to.
Templates are keyed by option identity and never interpolate caller input.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

Template = Tuple[str, ...]


class OperationCategory(Enum):
    """Operation categories; plan order follows PLAN_CATEGORY_ORDER"""
    BANNER = "banner"
    REMOVAL = "removal"
    PRIVACY = "privacy"
    PERFORMANCE = "performance"


PLAN_CATEGORY_ORDER = (
    OperationCategory.REMOVAL,
    OperationCategory.PRIVACY,
    OperationCategory.PERFORMANCE,
)


@dataclass(frozen=True)
class OperationOption:
    """A named boolean or enum toggle and its script template(s).

    Boolean toggles have a single template under the key ``True``; enum
    toggles have one template per choice.
    """
    name: str
    label: str
    category: OperationCategory
    templates: Mapping[Any, Template] = field(default_factory=dict)

    @property
    def choices(self) -> Optional[Tuple[str, ...]]:
        if self.is_enum:
            return tuple(self.templates)
        return None

    @property
    def is_enum(self) -> bool:
        return True not in self.templates

    def template_for(self, value: Any) -> Optional[Template]:
        """Template for a configured value, or None when not selected"""
        if self.is_enum:
            if isinstance(value, str):
                return self.templates.get(value)
            return None
        if is_truthy(value):
            return self.templates[True]
        return None


FALSE_STRINGS = frozenset({'', '0', 'false', 'no', 'off'})


def is_truthy(value: Any) -> bool:
    """Interpret a configuration value as a boolean toggle"""
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


@dataclass(frozen=True)
class Banner:
    """Fixed framing statements for the start or end of a plan"""
    id: str
    label: str
    template: Template


def _toggle(name: str, label: str, category: OperationCategory, *lines: str) -> OperationOption:
    return OperationOption(name=name, label=label, category=category, templates={True: tuple(lines)})


def _remove_app(name: str, label: str, package: str) -> OperationOption:
    return _toggle(
        name, f"Remove {label}", OperationCategory.REMOVAL,
        f"Write-Host 'Removing {label}...'",
        f"Get-AppxPackage -AllUsers {package} | Remove-AppxPackage",
        f"Write-Host '{label} removed.' -ForegroundColor Green",
    )


REMOVAL = OperationCategory.REMOVAL
PRIVACY = OperationCategory.PRIVACY
PERFORMANCE = OperationCategory.PERFORMANCE

_WINDOWS_UPDATE_SERVICE = (
    "Write-Host 'Disabling Windows Update...'",
    "Stop-Service -Name wuauserv -Force",
    "Set-Service -Name wuauserv -StartupType Disabled",
)

_WINDOWS_UPDATE_FIREWALL = (
    "New-NetFirewallRule -DisplayName 'Block Windows Update' -Direction Outbound -RemoteAddress "
    "('2.22.148.115', '2.22.148.116', '68.232.34.250', '96.17.16.148', 'sls.update.microsoft.com', "
    "'fe2.update.microsoft.com', 'fe3.delivery.dsp.mp.microsoft.com', 'wustat.windows.com', "
    "'windowsupdate.microsoft.com', 'update.microsoft.com') -Action Block",
)

DEFAULT_OPTIONS: Tuple[OperationOption, ...] = (
    # --- App Removal ---
    _toggle(
        "remove_onedrive", "Remove OneDrive", REMOVAL,
        "Write-Host 'Removing OneDrive...'",
        "taskkill /f /im OneDrive.exe 2>$null",
        "if (Test-Path \"$env:SystemRoot\\System32\\OneDriveSetup.exe\") "
        "{ Start-Process \"$env:SystemRoot\\System32\\OneDriveSetup.exe\" -ArgumentList \"/uninstall\" -Wait }",
        "Write-Host 'OneDrive removed.' -ForegroundColor Green",
    ),
    _remove_app("remove_cortana", "Cortana", "Microsoft.549981C3F5F10"),
    _toggle(
        "remove_xbox", "Remove Xbox Apps", REMOVAL,
        "Write-Host 'Removing Xbox Apps...'",
        "Get-AppxPackage -AllUsers Microsoft.XboxGamingOverlay | Remove-AppxPackage",
        "Get-AppxPackage -AllUsers Microsoft.XboxApp | Remove-AppxPackage",
        "Get-AppxPackage -AllUsers Microsoft.Xbox.TCUI | Remove-AppxPackage",
        "Get-AppxPackage -AllUsers Microsoft.XboxSpeechToTextOverlay | Remove-AppxPackage",
        "Get-AppxPackage -AllUsers Microsoft.XboxGameOverlay | Remove-AppxPackage",
        "Write-Host 'Xbox Apps removed.' -ForegroundColor Green",
    ),
    _remove_app("remove_skype", "Skype", "Microsoft.SkypeApp"),
    _remove_app("remove_weather", "Weather", "Microsoft.BingWeather"),
    _remove_app("remove_news", "News", "Microsoft.BingNews"),
    _remove_app("remove_feedback_hub", "Feedback Hub", "Microsoft.WindowsFeedbackHub"),
    _remove_app("remove_get_help", "Get Help", "Microsoft.GetHelp"),
    _remove_app("remove_tips", "Tips", "Microsoft.Getstarted"),
    _remove_app("remove_maps", "Maps", "Microsoft.WindowsMaps"),
    _remove_app("remove_solitaire", "Solitaire Collection", "Microsoft.MicrosoftSolitaireCollection"),
    _remove_app("remove_people", "People", "Microsoft.People"),
    _remove_app("remove_your_phone", "Your Phone", "Microsoft.YourPhone"),
    _remove_app("remove_photos", "Photos", "Microsoft.Windows.Photos"),
    _remove_app("remove_calculator", "Calculator", "Microsoft.WindowsCalculator"),

    # --- Privacy & Security ---
    _toggle(
        "disable_telemetry", "Disable Telemetry", PRIVACY,
        "Write-Host 'Disabling Telemetry...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\DataCollection' "
        "-Name 'AllowTelemetry' -Type DWord -Value 0",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Policies\\DataCollection' "
        "-Name 'AllowTelemetry' -Type DWord -Value 0",
        "Disable-ScheduledTask -TaskName 'Microsoft\\Windows\\Customer Experience Improvement Program\\Consolidator' "
        "-ErrorAction SilentlyContinue",
    ),
    _toggle(
        "disable_advertising_id", "Disable Advertising ID", PRIVACY,
        "Write-Host 'Disabling Advertising ID...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\AdvertisingInfo' "
        "-Name 'DisabledByGroupPolicy' -Type DWord -Value 1",
        "Set-ItemProperty -Path 'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\AdvertisingInfo' "
        "-Name 'Enabled' -Type DWord -Value 0",
    ),
    _toggle(
        "disable_location", "Disable Location Tracking", PRIVACY,
        "Write-Host 'Disabling Location Tracking...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\LocationAndSensors' "
        "-Name 'DisableLocation' -Type DWord -Value 1",
    ),
    _toggle(
        "disable_cortana_voice", "Disable Cortana Voice", PRIVACY,
        "Write-Host 'Disabling Cortana Voice...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\Windows Search' "
        "-Name 'AllowCortana' -Type DWord -Value 0",
    ),
    _toggle(
        "disable_error_reporting", "Disable Error Reporting", PRIVACY,
        "Write-Host 'Disabling Error Reporting...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Microsoft\\Windows\\Windows Error Reporting' "
        "-Name 'Disabled' -Type DWord -Value 1",
    ),
    _toggle(
        "disable_feedback_notifications", "Disable Feedback Notifications", PRIVACY,
        "Write-Host 'Disabling Feedback Notifications...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\DataCollection' "
        "-Name 'DoNotShowFeedbackNotifications' -Type DWord -Value 1",
    ),
    _toggle(
        "restrict_background_apps", "Restrict Background Apps", PRIVACY,
        "Write-Host 'Restricting Background Apps...'",
        "New-Item -Path 'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\AppPrivacy' -Force",
        "Set-ItemProperty -Path 'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\AppPrivacy' "
        "-Name 'LetAppsRunInBackground' -Type DWord -Value 2",
        "Write-Host 'Background Apps restricted.' -ForegroundColor Green",
    ),
    _toggle(
        "disable_start_suggestions", "Disable Start Menu Suggestions", PRIVACY,
        "Write-Host 'Disabling Start Menu Suggestions...'",
        "Set-ItemProperty -Path 'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\ContentDeliveryManager' "
        "-Name 'SystemPaneSuggestionsEnabled' -Type DWord -Value 0",
        "Write-Host 'Start Menu Suggestions disabled.' -ForegroundColor Green",
    ),
    OperationOption(
        name="windows_update",
        label="Disable Windows Update",
        category=PRIVACY,
        templates={
            "service": _WINDOWS_UPDATE_SERVICE + (
                "Write-Host 'Windows Update Disabled.' -ForegroundColor Green",
            ),
            "service_and_firewall": _WINDOWS_UPDATE_SERVICE + _WINDOWS_UPDATE_FIREWALL + (
                "Write-Host 'Windows Update Disabled.' -ForegroundColor Green",
            ),
        },
    ),

    # --- Gaming & Performance ---
    _toggle(
        "enable_ultimate_performance", "Enable Ultimate Performance Plan", PERFORMANCE,
        "Write-Host 'Enabling Ultimate Performance Plan...'",
        "powercfg -duplicatescheme e9a42b02-d5df-448d-aa00-03f14749eb61",
        "Write-Host 'Ultimate Performance Plan added. Please select it in Power Options.' -ForegroundColor Yellow",
    ),
    _toggle(
        "disable_game_dvr", "Disable GameDVR", PERFORMANCE,
        "Write-Host 'Disabling GameDVR...'",
        "Set-ItemProperty -Path 'HKCU:\\System\\GameConfigStore' -Name 'GameDVR_Enabled' -Type DWord -Value 0",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\GameDVR' "
        "-Name 'AllowGameDVR' -Type DWord -Value 0",
    ),
    _toggle(
        "disable_hibernation", "Disable Hibernation", PERFORMANCE,
        "Write-Host 'Disabling Hibernation...'",
        "powercfg /h off",
    ),
    _toggle(
        "disable_transparency", "Disable Transparency", PERFORMANCE,
        "Write-Host 'Disabling Transparency...'",
        "Set-ItemProperty -Path 'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\Themes\\Personalize' "
        "-Name 'EnableTransparency' -Type DWord -Value 0",
    ),
    _toggle(
        "disable_mouse_acceleration", "Disable Mouse Acceleration", PERFORMANCE,
        "Write-Host 'Disabling Mouse Acceleration...'",
        "Set-ItemProperty -Path 'HKCU:\\Control Panel\\Mouse' -Name 'MouseSpeed' -Type String -Value '0'",
        "Set-ItemProperty -Path 'HKCU:\\Control Panel\\Mouse' -Name 'MouseThreshold1' -Type String -Value '0'",
        "Set-ItemProperty -Path 'HKCU:\\Control Panel\\Mouse' -Name 'MouseThreshold2' -Type String -Value '0'",
        "Write-Host 'Mouse Acceleration disabled.' -ForegroundColor Green",
    ),
    _toggle(
        "disable_sticky_keys", "Disable Sticky Keys", PERFORMANCE,
        "Write-Host 'Disabling Sticky Keys...'",
        "Set-ItemProperty -Path 'HKCU:\\Control Panel\\Accessibility\\StickyKeys' -Name 'Flags' -Type String -Value '506'",
    ),
    _toggle(
        "optimize_network_throttling", "Optimize Network Throttling", PERFORMANCE,
        "Write-Host 'Optimizing Network Throttling...'",
        "Set-ItemProperty -Path 'HKLM:\\SOFTWARE\\Microsoft\\Windows NT\\CurrentVersion\\Multimedia\\SystemProfile' "
        "-Name 'NetworkThrottlingIndex' -Type DWord -Value 4294967295",
    ),
)

START_BANNER = Banner(
    id="banner.start",
    label="Starting System Optimization...",
    template=(
        "$ProgressPreference = 'SilentlyContinue'",
        "Write-Host 'Starting System Optimization...' -ForegroundColor Cyan",
        "Start-Sleep -Seconds 1",
    ),
)

END_BANNER = Banner(
    id="banner.end",
    label="Operation Completed Successfully.",
    template=(
        "Start-Sleep -Seconds 1",
        "Write-Host '----------------------------------------'",
        "Write-Host 'Operation Completed Successfully.' -ForegroundColor Green",
        "Write-Host 'Some changes may require a system restart.' -ForegroundColor Yellow",
    ),
)


class OperationCatalog:
    """Immutable table of options, injected into the plan builder"""

    def __init__(self, options: Tuple[OperationOption, ...] = DEFAULT_OPTIONS,
                 start_banner: Banner = START_BANNER, end_banner: Banner = END_BANNER):
        self._options = tuple(options)
        self._by_name: Dict[str, OperationOption] = {}
        for option in self._options:
            if option.category is OperationCategory.BANNER:
                raise ValueError(f"Option {option.name} cannot use the banner category")
            if option.name in self._by_name:
                raise ValueError(f"Duplicate option name: {option.name}")
            self._by_name[option.name] = option
        self.start_banner = start_banner
        self.end_banner = end_banner

    def __iter__(self) -> Iterator[OperationOption]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> Optional[OperationOption]:
        return self._by_name.get(name)

    def names(self) -> List[str]:
        return [option.name for option in self._options]

    def in_category(self, category: OperationCategory) -> List[OperationOption]:
        """Options of one category, in declaration order"""
        return [option for option in self._options if option.category is category]


# Default catalog instance
default_catalog = OperationCatalog()
