from __future__ import annotations

import argparse
import asyncio
import base64
import json
from pathlib import Path

from visionrelay.core.config.loader import load_app_config
from visionrelay.core.providers.credentials import EnvCredentials
from visionrelay.core.providers.health import HealthTracker
from visionrelay.core.providers.registry import ProviderRegistry
from visionrelay.core.providers.router import FailoverRouter
from visionrelay.core.runtime.errors import AllProvidersFailedError
from visionrelay.core.telemetry.logging import configure_logging


async def _analyze(router: FailoverRouter, prompt: str, image_b64: str):
    async with router:
        return await router.analyze(prompt, image_b64)


def main() -> int:
    parser = argparse.ArgumentParser(prog="visionrelay-diag", description="VisionRelay diagnostics CLI")
    parser.add_argument("--config", default=None, help="Config file path")
    parser.add_argument("--defaults", default="config/defaults.yaml", help="Defaults file path")
    parser.add_argument("--validate-config", action="store_true")
    parser.add_argument("--list-providers", action="store_true")
    parser.add_argument("--analyze", metavar="IMAGE", default=None, help="Image file to analyze")
    parser.add_argument("--prompt", default="Describe this image.")
    parser.add_argument("--health", action="store_true", help="Print provider health (zeroed unless --analyze ran)")
    args = parser.parse_args()

    try:
        cfg = load_app_config(defaults_path=args.defaults, instance_path=args.config)
    except Exception as exc:  # noqa: BLE001
        print(f"config-invalid error={exc}")
        return 1

    configure_logging(cfg.telemetry.log_level, cfg.telemetry.json_logs)
    credentials = EnvCredentials(cfg.credentials.env_vars)
    did_work = False

    if args.validate_config:
        did_work = True
        print(
            f"config-valid instance={cfg.instance.name} env={cfg.environment} "
            f"base={len(cfg.providers.base)} families={[f.id for f in cfg.providers.families]}"
        )

    if args.list_providers:
        did_work = True
        print("providers:")
        for index, provider in enumerate(ProviderRegistry(cfg.providers).build(credentials)):
            print(
                f"- {index}: {provider.name} auth={provider.auth_type.value} "
                f"retries={provider.max_retries} timeout_ms={provider.timeout_ms} model={provider.model}"
            )

    health: HealthTracker | None = None
    exit_code = 0

    if args.analyze:
        did_work = True
        try:
            image_b64 = base64.b64encode(Path(args.analyze).read_bytes()).decode("ascii")
        except OSError as exc:
            print(f"analyze-failed error={exc}")
            return 1
        router = FailoverRouter.from_config(cfg, credentials)
        health = router.health
        try:
            result = asyncio.run(_analyze(router, args.prompt, image_b64))
            print(json.dumps(result.as_dict(), ensure_ascii=False))
        except AllProvidersFailedError as exc:
            print(f"analyze-failed attempted={exc.attempted_provider_names} last_error={exc.last_error_message}")
            exit_code = 1

    if args.health:
        did_work = True
        if health is None:
            health = HealthTracker(p.name for p in ProviderRegistry(cfg.providers).build(credentials))
        print(json.dumps(health.summary(), indent=2))

    if exit_code:
        return exit_code
    if not did_work:
        parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
