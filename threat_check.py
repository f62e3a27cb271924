import argparse
import os
import sys
from collections import defaultdict
from functools import partial
from typing import Dict, List, Mapping, Optional, Tuple

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib   # fallback for <=3.10

from errors import ConfigError, RunError, ThreatCheckError
from providers import get_provider
from reports import render_malicious_table, render_summary
from schemas import Credentials, InventoryTriple, RunResult, ThreatEntry, VulnerableMatch
from utils.http import Http
from utils.logger import get_logger, setup_logging
from utils.paginate import drain_cursor, drain_pages

logger = get_logger(__name__)

# (config key, environment variable, CLI flag)
SECRETS = [
    ("phylum_api_token", "PHYLUM_API_TOKEN", "--phylum-api-token"),
    ("veracode_api_id", "VERACODE_API_ID", "--veracode-api-id"),
    ("veracode_api_key", "VERACODE_API_KEY", "--veracode-api-key"),
]


def load_config(path: str = "config.toml") -> Dict:
    """Load config.toml if present; otherwise return sane defaults."""
    cfg = {
        "api_keys": {key: "" for key, _, _ in SECRETS},
        "network": {
            "timeout_seconds": 30,
        },
        "phylum": {
            "base_url": "https://threats.phylum.io/",
            "per_page": 50,
        },
        "veracode": {
            "host": "api.veracode.com",
            "base_path": "/srcclr/v3",
            "page_size": 100,
        },
        "output": {
            "summary_file": "summary.txt",
            "malicious_packages_file": "new-malicious-packages.txt",
        },
        "debug": False,
    }
    if os.path.exists(path):
        try:
            with open(path, "rb") as f:
                user = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid {path}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read {path}: {exc}") from exc
        # shallow merge
        for k, v in user.items():
            if isinstance(v, dict) and k in cfg:
                cfg[k].update(v)
            else:
                cfg[k] = v
    return cfg


def resolve_credentials(args: argparse.Namespace, cfg: Dict, environ: Mapping[str, str]) -> Credentials:
    """Pick each secret from the CLI flag, then the environment, then config.toml."""
    values: Dict[str, str] = {}
    for key, env_var, flag in SECRETS:
        value = getattr(args, key, None) or environ.get(env_var) or cfg["api_keys"].get(key)
        if not value:
            raise ConfigError(
                f"Missing required parameter '{key}'. "
                f"Pass {flag} or set the environment variable '{env_var}'. "
                f"For local testing, you can set: export {env_var}='your-value'"
            )
        values[key] = value
    debug = bool(getattr(args, "debug", False)) or environ.get("DEBUG") == "true" or bool(cfg.get("debug"))
    return Credentials(debug=debug, **values)


def mask(secret: str) -> str:
    return f"{secret[:10]}..."


def check_credentials(creds: Credentials) -> None:
    if not creds.phylum_api_token.startswith(("ph0_", "p0_")):
        logger.warning('Phylum API token should start with "ph0_" or "p0_". Please verify your token is correct.')
    if len(creds.veracode_api_id) < 20:
        logger.warning("Veracode API ID seems too short. Please verify your API ID is correct.")
    if len(creds.veracode_api_key) < 50:
        logger.warning("Veracode API Key seems too short. Please verify your API key is correct.")
    logger.info("Configuration:")
    logger.info("   - Phylum API Token: %s", mask(creds.phylum_api_token))
    logger.info("   - Veracode API ID: %s", creds.veracode_api_id)
    logger.info("   - Veracode API Key: %s", mask(creds.veracode_api_key))
    logger.info("   - Debug Mode: %s", "Enabled" if creds.debug else "Disabled")


def fetch_threats(feed) -> List[ThreatEntry]:
    logger.info("Fetching all threat packages from Phylum...")
    return drain_cursor(feed.fetch_page)


def fetch_inventory(source) -> List[InventoryTriple]:
    """Flatten workspaces -> projects -> libraries into triples, in API order.

    An unreachable workspace listing is fatal. Project and library listings
    degrade to empty or partial results.
    """
    logger.info("Fetching all libraries from Veracode...")
    triples: List[InventoryTriple] = []
    workspaces = drain_pages(source.list_workspaces, "workspaces", strict=True)
    logger.info("Fetched %d workspaces", len(workspaces))
    for ws in workspaces:
        logger.info("Processing workspace: %s (%s)", ws.name, ws.id)
        projects = drain_pages(partial(source.list_projects, ws.id), "projects")
        for project in projects:
            logger.info("  Processing project: %s (%s)", project.name, project.id)
            libraries = drain_pages(partial(source.list_libraries, ws.id, project.id), "libraries")
            triples.extend(InventoryTriple(library=lib, project=project, workspace=ws) for lib in libraries)
            logger.info("    Found %d libraries in project %s", len(libraries), project.name)
    logger.info("Total libraries fetched: %d", len(triples))
    return triples


def find_matches(threats: List[ThreatEntry], inventory: List[InventoryTriple]) -> List[VulnerableMatch]:
    """Exact (name, version) join, ordered by threat then by inventory position.

    Every qualifying pair yields one match, so repeated threat entries and
    repeated library occurrences are all kept.
    """
    logger.info("Comparing threat packages with project libraries...")
    by_key: Dict[Tuple[str, str], List[InventoryTriple]] = defaultdict(list)
    for triple in inventory:
        by_key[(triple.library.name, triple.library.version)].append(triple)

    matches: List[VulnerableMatch] = []
    for threat in threats:
        for triple in by_key.get((threat.name, threat.version), []):
            matches.append(VulnerableMatch(
                threat=threat,
                library=triple.library,
                project=triple.project,
                workspace=triple.workspace,
            ))
    logger.info("Found %d vulnerable package matches", len(matches))
    return matches


def ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_text(path: str, text: str) -> None:
    ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def build_sources(creds: Credentials, cfg: Dict):
    http = Http(timeout=cfg["network"]["timeout_seconds"])
    feed = get_provider("phylum")(
        creds.phylum_api_token, http,
        base_url=cfg["phylum"]["base_url"], per_page=cfg["phylum"]["per_page"],
    )
    inventory = get_provider("veracode")(
        creds.veracode_api_id, creds.veracode_api_key, http,
        host=cfg["veracode"]["host"], base_path=cfg["veracode"]["base_path"],
        page_size=cfg["veracode"]["page_size"],
    )
    return feed, inventory


def run(creds: Credentials, cfg: Dict, feed=None, inventory=None,
        summary_path: Optional[str] = None, table_path: Optional[str] = None) -> RunResult:
    """Fetch both data sets, join them, and write the two reports."""
    summary_path = summary_path or cfg["output"]["summary_file"]
    table_path = table_path or cfg["output"]["malicious_packages_file"]
    try:
        if feed is None or inventory is None:
            default_feed, default_inventory = build_sources(creds, cfg)
            feed = feed or default_feed
            inventory = inventory or default_inventory

        threats = fetch_threats(feed)
        triples = fetch_inventory(inventory)
        matches = find_matches(threats, triples)

        summary = render_summary(matches)
        write_text(summary_path, summary)
        write_text(table_path, render_malicious_table(threats))
        logger.info("Summary written to %s", summary_path)
        logger.info("Malicious packages table written to %s", table_path)
        print(summary)
    except ThreatCheckError:
        raise
    except Exception as exc:
        raise RunError(f"Action failed: {exc}") from exc

    return RunResult(
        match_count=len(matches),
        threat_count=len(threats),
        library_count=len(triples),
        summary_file=summary_path,
        malicious_packages_file=table_path,
    )


def set_ci_outputs(result: RunResult, environ: Mapping[str, str]) -> None:
    """Append step outputs to the file named by GITHUB_OUTPUT, when set."""
    path = environ.get("GITHUB_OUTPUT")
    if not path:
        return
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"vulnerable_packages_count={result.match_count}\n")
            f.write(f"summary_file={result.summary_file}\n")
            f.write(f"malicious_packages_file={result.malicious_packages_file}\n")
    except OSError as exc:
        raise RunError(f"Cannot write step outputs to {path}: {exc}") from exc


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Cross-reference the Phylum threat feed with Veracode SCA libraries")
    ap.add_argument("--phylum-api-token", dest="phylum_api_token", help="or PHYLUM_API_TOKEN")
    ap.add_argument("--veracode-api-id", dest="veracode_api_id", help="or VERACODE_API_ID")
    ap.add_argument("--veracode-api-key", dest="veracode_api_key", help="or VERACODE_API_KEY")
    ap.add_argument("--debug", action="store_true", help="verbose request logging (or DEBUG=true)")
    ap.add_argument("--config", default="config.toml")
    ap.add_argument("--out-summary", default=None, help="defaults to output.summary_file")
    ap.add_argument("--out-table", default=None, help="defaults to output.malicious_packages_file")
    return ap


def main(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    args = build_parser().parse_args(argv)
    environ = os.environ if environ is None else environ

    try:
        cfg = load_config(args.config)
        creds = resolve_credentials(args, cfg, environ)
        setup_logging(creds.debug)
        if creds.debug:
            logger.info("Debug mode enabled - detailed logging will be shown")
        check_credentials(creds)
        result = run(creds, cfg, summary_path=args.out_summary, table_path=args.out_table)
        set_ci_outputs(result, environ)
    except ThreatCheckError as exc:
        logger.error("Action failed: %s", exc)
        return 1

    print(f"Saved → {result.summary_file}\nSaved → {result.malicious_packages_file}")

    if result.match_count > 0:
        logger.error("Found %d vulnerable packages that require immediate attention!", result.match_count)
        return 1
    logger.info("✅ No vulnerable packages found. All clear!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
