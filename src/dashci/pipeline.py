# pipeline.py
# The two CI stages: compute the change set, then render (and maybe deploy).
#
# diff:  Init -> DiffComputed
# build: Rendered -> FolderEnsured -> DashboardsUploaded -> Done
# Any DashciError aborts the run; nothing is rolled back.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .config import Settings
from .deploy import cleanup_merged_branch, create_grafana_folder, deploy_all_dashboards, select_environment, DEV
from .diff import compute_change_set, write_change_set
from .errors import ConfigError
from .grafana.api_client import GrafanaClient
from .render import clean_branch, dist_path, folder_uid, render_changed
from .tools import Tools
from .ui.console import get_console

ClientFactory = Callable[[Settings, str], GrafanaClient]


@dataclass
class BuildResult:
    rendered: bool
    deployed: int = 0
    environment: Optional[str] = None
    folder_uid: Optional[str] = None


def make_client(settings: Settings, environment: str) -> GrafanaClient:
    return GrafanaClient(
        settings.server_url(environment),
        str(settings.grafana_user),
        str(settings.grafana_password),
        timeout=settings.timeout,
    )


def make_tools(settings: Settings) -> Tools:
    return Tools(jsonnet_path=settings.jsonnet_path, timeout=settings.timeout)


def run_diff(settings: Settings, cwd: Optional[str | Path] = None) -> List[str]:
    """Compute the change set and persist it to the change set file."""
    files = compute_change_set(settings, cwd=cwd)
    out = Path(cwd or ".") / settings.change_set_file
    write_change_set(out, files)
    get_console().print_info(f"Wrote {len(files)} changed file(s) to {out}")
    return files


def run_build(
    settings: Settings,
    *,
    project: Optional[str] = None,
    deploy: bool = False,
    tools: Optional[Tools] = None,
    client_factory: ClientFactory = make_client,
) -> BuildResult:
    """
    Render changed dashboards and, when deploy is set, upload them.

    Rendering always finishes for every dashboard before the first upload.
    Deployment is skipped entirely when the change set lists no dashboards.

    Raises:
        ConfigError: If required settings or --project are missing.
    """
    console = get_console()
    settings.require("branch")
    branch = str(settings.branch)

    if deploy:
        missing = []
        if not project:
            missing.append("--project")
        try:
            settings.require("grafana_user", "grafana_password", servers=(select_environment(branch),))
        except ConfigError as e:
            missing += e.missing
        if missing:
            raise ConfigError(missing, "missing required deploy configuration")

    tools = tools or make_tools(settings)
    dist = dist_path(settings.dist_dir)

    if not deploy:
        rendered = render_changed(
            settings.change_set_file,
            branch,
            tools=tools,
            dist_dir=dist,
            dashboards_dir=settings.dashboards_dir,
        )
        return BuildResult(rendered=rendered)

    console.print_header("Running grafana deploy")
    cleaned = clean_branch(branch)
    console.print_info(f"Project: {cleaned}")

    rendered = render_changed(
        settings.change_set_file,
        cleaned,
        tools=tools,
        dist_dir=dist,
        dashboards_dir=settings.dashboards_dir,
    )
    if not rendered:
        console.print_info("No dashboards changed, nothing to deploy.")
        return BuildResult(rendered=False)

    uid = folder_uid(branch)
    environment = select_environment(branch)
    client = client_factory(settings, environment)

    create_grafana_folder(client, uid, cleaned)
    console.print_header("Deploying Dashboards")
    count = deploy_all_dashboards(client, tools, dist, uid, settings.exclude_dirs)

    console.print_deployed(environment, f"{settings.server_url(environment)}/dashboards/", count)
    return BuildResult(rendered=True, deployed=count, environment=environment, folder_uid=uid)


def run_cleanup(settings: Settings, client_factory: ClientFactory = make_client) -> Optional[str]:
    """Remove the dev folder of the short-lived branch named in the merge commit."""
    settings.require("commit_message", "grafana_user", "grafana_password", servers=(DEV,))
    client = client_factory(settings, DEV)
    return cleanup_merged_branch(client, str(settings.commit_message))
