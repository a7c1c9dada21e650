"""CLI entrypoint for blue-green demos."""

from __future__ import annotations

from argparse import ArgumentParser
from pathlib import Path

from bluegreen.demo import fixtures
from bluegreen.demo.runner import run_scenario

SCENARIOS = {
    "first-rollout": fixtures.first_rollout,
    "preview": fixtures.preview_verification,
    "history": fixtures.revision_history,
}


def main() -> None:
    parser = ArgumentParser(description="Run blue-green rollout demo scenarios.")
    parser.add_argument("scenario", choices=sorted(SCENARIOS), help="Scenario to run.")
    parser.add_argument(
        "--config",
        default=None,
        type=Path,
        help="Path to controller configuration (defaults to the bundled controller.yaml).",
    )
    parser.add_argument(
        "--no-tracing", action="store_true", help="Disable OpenTelemetry console spans."
    )
    args = parser.parse_args()

    result = run_scenario(
        SCENARIOS[args.scenario](),
        args.config,
        start_metrics=False,
        enable_tracing=not args.no_tracing,
    )
    print(f"Scenario {args.scenario} settled after {result.rounds} rounds")
    for service, fingerprint in sorted(result.selectors.items()):
        print(f"  service {service} -> {fingerprint or '<unbound>'}")
    for condition in result.status.conditions:
        print(f"  {condition.type.value}={condition.status.value} ({condition.reason})")
    print(f"  replica sets: {', '.join(result.replica_sets)}")


if __name__ == "__main__":
    main()
