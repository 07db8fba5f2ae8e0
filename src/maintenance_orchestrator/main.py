#!/usr/bin/env python3
"""
Maintenance Orchestrator - command line entry point
Builds plans from chosen options, runs or simulates them, repairs system
files, and installs programs from the catalog
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .core.config import config
from .core.errors import RunInProgressError
from .core.platform_compat import platform_manager
from .execution.backends import probe_host
from .execution.elevation import ElevationGuard
from .execution.integrity import IntegrityRepairService
from .execution.models import OutputEvent, ProgressEvent, RunOutcome, RunResult
from .planning.catalog import PLAN_CATEGORY_ORDER, default_catalog
from .planning.plan_builder import PlanBuilder
from .planning.script import render_script
from .session import OrchestrationSession

logger = logging.getLogger(__name__)


def setup_logging(log_level="INFO", log_file=None):
    """Setup logging configuration"""
    handlers = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Maintenance Orchestrator")
    parser.add_argument("--log-level", help="Logging level (defaults to core.log_level)")
    parser.add_argument("--config-dir", help="Configuration directory")
    parser.add_argument("--list-options", action="store_true", help="List maintenance options")
    parser.add_argument("--list-programs", action="store_true", help="List installable programs")
    parser.add_argument("--enable", action="append", default=[], metavar="NAME[=VALUE]",
                        help="Select an option (repeatable)")
    parser.add_argument("--options", metavar="FILE", help="YAML file of option values")
    parser.add_argument("--show-plan", action="store_true", help="Print the plan operations")
    parser.add_argument("--show-script", action="store_true", help="Print the generated script")
    parser.add_argument("--run", action="store_true", help="Execute the plan")
    parser.add_argument("--simulate", action="store_true", help="Force simulation mode")
    parser.add_argument("--repair", action="store_true", help="Run system file integrity repair")
    parser.add_argument("--install", metavar="NAME", help="Download and install a program")
    return parser


def parse_enable(values: List[str]) -> Dict[str, Any]:
    """Turn NAME / NAME=VALUE arguments into a configuration mapping"""
    configuration: Dict[str, Any] = {}
    for value in values:
        name, sep, selected = value.partition("=")
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid option '{value}'")
        configuration[name] = selected.strip() if sep else True
    return configuration


def load_options_file(path: str) -> Dict[str, Any]:
    """Read option values from YAML, either top-level or under an ``options`` key"""
    with open(Path(path).expanduser(), 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping of option names to values")
    options = data.get('options', data)
    if not isinstance(options, dict):
        raise ValueError(f"'options' in {path} must be a mapping")
    return dict(options)


def build_configuration(args) -> Dict[str, Any]:
    configuration: Dict[str, Any] = {}
    if args.options:
        configuration.update(load_options_file(args.options))
    configuration.update(parse_enable(args.enable))
    return configuration


def print_options():
    """Print the maintenance catalog grouped by category"""
    print("\n🧰 Maintenance Options:")
    for category in PLAN_CATEGORY_ORDER:
        print(f"\n  {category.value.title()}:")
        for option in default_catalog.in_category(category):
            if option.is_enum:
                print(f"    - {option.name}={'|'.join(option.choices)}  {option.label}")
            else:
                print(f"    - {option.name}  {option.label}")


def print_programs(session: OrchestrationSession):
    print("\n📦 Installable Programs:")
    for program in session.programs:
        print(f"  - {program.name}: {program.description}")


def print_plan(configuration: Dict[str, Any]):
    plan = PlanBuilder().build(configuration)
    print(f"\n📋 Plan ({len(plan.steps)} operation(s)):")
    for index, operation in enumerate(plan, start=1):
        print(f"  {index:2d}. [{operation.category.value}] {operation.human_label}")


def print_status_summary():
    """Print host and configuration status"""
    print("\n🛠️  Maintenance Orchestrator")
    print("=" * 50)

    try:
        summary = config.get_config_summary()
        platform = platform_manager.get_platform()
        capability = probe_host(platform)

        print(f"📁 Config Directory: {summary['config_dir']}")
        print(f"🔧 Log Level: {summary['log_level']}")
        print(f"💻 Platform: {platform.get_system_info().platform}")
        print(f"🔐 Elevated: {'✅ Yes' if platform.is_elevated() else '❌ No'}")
        if capability.live_supported:
            print(f"⚡ Execution: live ({capability.interpreter})")
        else:
            print(f"🧪 Execution: simulated ({capability.reason})")
    except Exception as e:
        print(f"❌ Error getting status: {e}")

    print("\n📖 Available Commands:")
    print("  maintenance-orchestrator --list-options                 # List maintenance options")
    print("  maintenance-orchestrator --enable NAME --show-plan      # Preview a plan")
    print("  maintenance-orchestrator --enable NAME --run            # Run a plan")
    print("  maintenance-orchestrator --enable NAME --run --simulate # Simulate a plan")
    print("  maintenance-orchestrator --repair                       # Repair system files")
    print("  maintenance-orchestrator --list-programs                # List installable programs")
    print("  maintenance-orchestrator --install NAME                 # Install a program")


class ProgressPrinter:
    """Prints progress only when it moves by a whole step"""

    def __init__(self, step: float = 5.0):
        self.step = step
        self._printed: Optional[float] = None

    def __call__(self, event: ProgressEvent):
        percent = event.percent
        if percent == self._printed:
            return
        if self._printed is not None and percent - self._printed < self.step and percent < 100.0:
            return
        self._printed = percent
        print(f"   📊 {percent:5.1f}%")


def print_output(event: OutputEvent):
    if event.is_error:
        print(f"❗ {event.text}", file=sys.stderr)
    else:
        print(event.text)


def print_status(text: str):
    print(f"➡️  {text}")


def report_result(result: RunResult, session: OrchestrationSession) -> int:
    """Print the terminal result and map it to an exit code"""
    if result.succeeded:
        print("\n✅ Completed successfully")
        return 0

    if result.outcome is RunOutcome.ELEVATION_REQUIRED:
        guard_result = session.last_guard_result
        if guard_result is not None and guard_result.relaunch_confirmed:
            print("\n🔐 Relaunched with administrator privileges; continuing in the elevated instance")
            return 0
        print("\n🔐 Administrator privileges are required and the elevated relaunch did not start")
        return 1

    if result.outcome is RunOutcome.CANCELLED:
        print("\n⏹️  Cancelled")
        return 1

    print(f"\n❌ Failed: {result.reason}")
    return 1


async def run_plan(session: OrchestrationSession, configuration: Dict[str, Any],
                   simulate: bool) -> int:
    progress = ProgressPrinter()
    result: Optional[RunResult] = None

    async for item in session.stream(configuration, force_simulation=simulate):
        if isinstance(item, OutputEvent):
            print_output(item)
        elif isinstance(item, ProgressEvent):
            progress(item)
        else:
            result = item

    return report_result(result, session)


async def run_repair(session: OrchestrationSession) -> int:
    result = await session.repair(print_status, ProgressPrinter())
    return report_result(result, session)


async def run_install(session: OrchestrationSession, name: str) -> int:
    result = await session.install(name, print_status)
    return report_result(result, session)


def relaunch_argv(argv: Optional[List[str]]) -> List[str]:
    """Arguments that rerun this CLI as a module under the same interpreter"""
    arguments = list(sys.argv[1:] if argv is None else argv)
    return ['-m', 'maintenance_orchestrator.main'] + arguments


def create_session(argv: Optional[List[str]], simulate: bool = False) -> OrchestrationSession:
    platform = platform_manager.get_platform()
    integrity = None
    if simulate or config.get('execution.force_simulation', False):
        integrity = IntegrityRepairService(platform, live=False)
    return OrchestrationSession(platform=platform,
                                guard=ElevationGuard(platform, relaunch_argv(argv)),
                                integrity=integrity)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config_dir:
        config.set_config_dir(args.config_dir)

    setup_logging(args.log_level or config.get('core.log_level', 'INFO'), config.get('core.log_file'))

    valid, errors = config.validate_config()
    if not valid:
        for error in errors:
            logger.warning(f"Configuration problem: {error}")

    try:
        configuration = build_configuration(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid options: {e}")
        print(f"❌ Invalid options: {e}")
        return 1

    if args.list_options:
        print_options()
        return 0

    if args.show_plan:
        print_plan(configuration)
    if args.show_script:
        print(render_script(PlanBuilder().build(configuration)))

    if not (args.run or args.repair or args.install or args.list_programs):
        if not (args.show_plan or args.show_script):
            print_status_summary()
        return 0

    session = create_session(argv, args.simulate)

    if args.list_programs:
        print_programs(session)
        return 0

    try:
        if args.install:
            return asyncio.run(run_install(session, args.install))
        if args.repair:
            return asyncio.run(run_repair(session))
        logger.info("Maintenance Orchestrator starting run...")
        return asyncio.run(run_plan(session, configuration, args.simulate))
    except KeyError as e:
        print(f"❌ {e.args[0] if e.args else e}")
        return 1
    except RunInProgressError as e:
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⏹️  Interrupted")
        return 1
    except Exception as e:
        logger.error(f"Error running Maintenance Orchestrator: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
