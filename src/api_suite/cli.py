"""CLI entry point for api-suite."""

import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType

import click
import yaml

from api_suite.config import load_settings
from api_suite.http.client import HttpClient
from api_suite.logging_setup import configure_logging
from api_suite.metadata.resolver import SpecificationResolver, is_suite
from api_suite.runner.local import FAILED, XPASSED, LocalRunner
from api_suite.suite.orchestrator import register_suite
from api_suite.suite.plan import build_plan


def _load_module(target: str) -> ModuleType:
    """Import a dotted module name or a .py file path."""
    path = Path(target)
    if path.suffix == ".py":
        if not path.exists():
            raise click.BadParameter(f"{target} does not exist", param_hint="TARGET")
        module_name = path.stem
        spec = importlib.util.spec_from_file_location(module_name, path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
        return module
    try:
        return importlib.import_module(target)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {target}: {e}", param_hint="TARGET") from e


def _find_suites(module: ModuleType) -> list[type]:
    return [
        obj
        for obj in vars(module).values()
        if is_suite(obj) and obj.__module__ == module.__name__
    ]


@click.group()
def main():
    """API Suite — declarative HTTP API test suites."""
    pass


@main.command(name="list")
@click.argument("target")
@click.option("--format", "fmt", default="text", type=click.Choice(["text", "yaml"]), help="Output format.")
@click.option("--strict", is_flag=True, default=False, help="Fail on conflicting fragments instead of warning.")
def list_suites(target: str, fmt: str, strict: bool):
    """Show the resolved plan of every suite in TARGET."""
    module = _load_module(target)
    resolver = SpecificationResolver(strict=strict or None)
    plans = [build_plan(cls, resolver).to_dict() for cls in _find_suites(module)]

    if fmt == "yaml":
        click.echo(yaml.safe_dump(plans, sort_keys=False, allow_unicode=True), nl=False)
        return

    if not plans:
        click.echo(f"No suites found in {target}.")
        return
    for plan in plans:
        click.echo(f"{plan['suite']} ({plan['class']})")
        for phase, names in plan["hooks"].items():
            click.echo(f"  [{phase}] {', '.join(names)}")
        for item in plan["tests"]:
            api = item.get("api", {})
            endpoint = f" -> {api.get('method')} {api.get('path')}" if item.get("api_eligible") else ""
            flags = " ".join(f"{k}={v}" for k, v in item.get("modifiers", {}).items())
            click.echo(f"  - {item['title']}{endpoint}{'  ' + flags if flags else ''}")


@main.command()
@click.argument("target")
@click.option("--base-url", default=None, help="Base URL for relative endpoint paths.")
@click.option("--token", default=None, help="Bearer token for every request.")
@click.option("--tag", "tags", multiple=True, help="Only run tests carrying this tag (repeatable).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path), help="YAML settings file.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log requests and hook activity.")
def run(target: str, base_url: str | None, token: str | None, tags: tuple[str, ...], config_path: Path | None, verbose: bool):
    """Run every suite in TARGET and report one line per test."""
    configure_logging("DEBUG" if verbose else "WARNING")
    settings = load_settings(config_path, base_url=base_url, token=token)

    module = _load_module(target)
    suites = _find_suites(module)
    if not suites:
        click.echo(f"No suites found in {target}.")
        return

    runner = LocalRunner(
        transport_factory=lambda: HttpClient(settings.base_url, settings.token, settings.timeout),
        tags=tags,
    )
    resolver = SpecificationResolver(strict=settings.strict_merge)
    for cls in suites:
        register_suite(cls, runner, resolver)
    outcomes = runner.run()

    for outcome in outcomes:
        line = f"{outcome.status.upper():8} {outcome.suite} > {outcome.title}"
        if outcome.error is not None and outcome.status in (FAILED, XPASSED):
            line += f"\n         {type(outcome.error).__name__}: {outcome.error}"
        click.echo(line)

    failed = sum(1 for o in outcomes if not o.ok)
    click.echo(f"{len(outcomes)} result(s), {failed} failed")
    if failed:
        sys.exit(1)
