import argparse
import json
import os
import sys
from pathlib import Path

from site_factory.config import Config
from site_factory.emitters import TARGET_KINDS
from site_factory.entitlements import PLANS
from site_factory.factory import SiteFactory
from site_factory.marketplaces import DEFAULT_MARKETPLACES
from site_factory.providers import DEFAULT_PROVIDERS
from site_factory.site_model import SiteModel
from site_factory.utils import ProductionError, get_logger

logger = get_logger(__name__)


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _load_site(factory: SiteFactory, args) -> SiteModel:
    if getattr(args, "site_json", None):
        with open(args.site_json, "r", encoding="utf-8") as f:
            return SiteModel.from_dict(json.load(f))
    return factory.create_project(args.user, args.description)


def _write_artifact(artifact, out_dir: str) -> str:
    root = Path(out_dir) / artifact.id
    for rel, content in artifact.flat_files().items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return str(root)


def cmd_subscribe(factory: SiteFactory, args) -> dict:
    return factory.gate.subscribe(args.user, args.plan, status=args.status)


def cmd_classify(factory: SiteFactory, args) -> dict:
    return factory.create_project(args.user, args.description).to_dict()


def cmd_generate(factory: SiteFactory, args) -> dict:
    site = _load_site(factory, args)
    report = factory.generate_content(site, user_id=args.user, use_remote=not args.offline)
    return {"site": site.to_dict(), "report": report.to_dict()}


def cmd_emit(factory: SiteFactory, args) -> dict:
    site = _load_site(factory, args)
    if not args.skip_content:
        factory.generate_content(site, user_id=args.user, use_remote=not args.offline)
    artifact = factory.emit(site, args.target)
    output = _write_artifact(artifact, args.out)
    summary = artifact.to_dict()
    summary["files"] = sorted(summary["files"])
    summary["output_dir"] = output
    return summary


def cmd_deploy(factory: SiteFactory, args) -> dict:
    config = {"project_name": args.project_name or args.artifact_id, "domain": args.domain,
              "environment": args.environment}
    return factory.deploy(args.user, args.artifact_id, args.provider, config)


def cmd_publish(factory: SiteFactory, args) -> dict:
    config = {
        "app_name": args.app_name,
        "bundle_id": args.bundle_id or "",
        "version": args.version,
        "description": args.app_description,
        "category": args.category,
        "keywords": [k.strip() for k in args.keywords.split(",") if k.strip()],
        "privacy_policy_url": args.privacy_policy_url,
    }
    return factory.publish(args.user, args.artifact_id, args.store, config)


def cmd_sweep(factory: SiteFactory, args) -> dict:
    return factory.sweep(args.max_age)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Site factory: description -> site model -> artifacts -> deployments")
    parser.add_argument("--user", default=os.getenv("SITE_FACTORY_USER", "local-user"), help="Acting user id")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("subscribe", help="Set a user's plan (billing read model)")
    p.add_argument("plan", choices=sorted(PLANS))
    p.add_argument("--status", default="active")
    p.set_defaults(func=cmd_subscribe)

    p = sub.add_parser("classify", help="Classify a description into a site model")
    p.add_argument("description")
    p.set_defaults(func=cmd_classify)

    for name, func, help_text in (
        ("generate", cmd_generate, "Classify and fill content/design"),
        ("emit", cmd_emit, "Build an artifact for a target and write it to disk"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("description", nargs="?", default="")
        p.add_argument("--site-json", help="Use a saved site model instead of classifying a description")
        p.add_argument("--offline", action="store_true", help="Skip remote suggestions; use template copy")
        if name == "emit":
            p.add_argument("--target", choices=TARGET_KINDS, default="web")
            p.add_argument("--out", default=Config.OUTPUT_DIR)
            p.add_argument("--skip-content", action="store_true", help="Emit the site model as-is")
        p.set_defaults(func=func)

    p = sub.add_parser("deploy", help="Deploy a stored artifact")
    p.add_argument("artifact_id")
    p.add_argument("--provider", choices=sorted(DEFAULT_PROVIDERS), required=True)
    p.add_argument("--project-name")
    p.add_argument("--domain")
    p.add_argument("--environment", default="production")
    p.set_defaults(func=cmd_deploy)

    p = sub.add_parser("publish", help="Submit a stored mobile artifact to a store")
    p.add_argument("artifact_id")
    p.add_argument("--store", choices=sorted(DEFAULT_MARKETPLACES), required=True)
    p.add_argument("--app-name", required=True)
    p.add_argument("--bundle-id")
    p.add_argument("--version", default="1.0.0")
    p.add_argument("--app-description", default="")
    p.add_argument("--category", default="Business")
    p.add_argument("--keywords", default="")
    p.add_argument("--privacy-policy-url")
    p.set_defaults(func=cmd_publish)

    p = sub.add_parser("sweep", help="Fail deployments/publications stuck in progress")
    p.add_argument("--max-age", type=float, default=Config.STALE_RECORD_SECONDS)
    p.set_defaults(func=cmd_sweep)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        Config.validate()
        factory = SiteFactory()
        _print(args.func(factory, args))
        return 0
    except ProductionError as pe:
        logger.critical(
            f"Fatal pipeline error (stage: {pe.stage}, record: {pe.record_id}): {pe.describe()}",
            exc_info=True,
        )
        return 1
    except Exception as e:
        logger.critical(f"Unexpected fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
