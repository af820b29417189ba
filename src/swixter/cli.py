"""CLI interface for swixter."""

from __future__ import annotations

import logging
import sys

import click

from swixter import __version__
from swixter.coders import CODERS, UnknownCoderError, get_coder
from swixter.config import (
    InvalidConfigError,
    ModelRoles,
    Profile,
    ProfileNotFoundError,
    get_active_profile,
    get_profile,
    load_config,
)
from swixter.export import (
    ExportError,
    ImportFormatError,
    SanitizedImportError,
    export_profiles,
    import_profiles,
)
from swixter.logging_utils import setup_logging
from swixter.presets import (
    AUTH_TYPES,
    WIRE_APIS,
    InvalidPresetError,
    ProviderPreset,
    UnknownProviderError,
    all_presets,
    delete_user_preset,
    get_builtin_preset,
    load_user_presets,
    resolve_preset,
    upsert_user_preset,
)
from swixter.sync import (
    CoderNotInstalledError,
    NoActiveProfileError,
    SyncResult,
    apply_active,
    create_profile,
    remove_profile_everywhere,
    run_coder,
    switch_profile,
    verify_active,
)

CODER_CHOICE = click.Choice(sorted(CODERS))


def styled(text: str, **kwargs) -> str:
    return click.style(text, **kwargs)


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def success(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='green')}")


def warn(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='yellow')}")


def error(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='red')}")


def heading(msg: str) -> None:
    click.echo(f"\n  {styled(msg, bold=True)}")


def fail(msg: str, hint: str | None = None) -> None:
    error(msg)
    if hint:
        info(styled(hint, dim=True))
    sys.exit(1)


def _report(result: SyncResult) -> None:
    success(f"Applied '{result.profile.name}' to {result.config_path}")
    if not result.verified:
        warn("Config written, but it does not read back as expected.")
    for line in result.env_exports:
        info(f"Set your key before running: {styled(line, fg='cyan')}")


@click.group()
@click.version_option(version=__version__, prog_name="swixter")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Switch AI coding tools between provider profiles."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


@cli.group(invoke_without_command=True)
@click.pass_context
def providers(ctx: click.Context) -> None:
    """Manage provider presets (built-in and user-defined)."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(providers_list)


@providers.command("list")
@click.option("--coder", type=CODER_CHOICE, default=None, help="Only providers this coder accepts.")
def providers_list(coder: str | None = None) -> None:
    """List provider presets."""
    presets = all_presets()
    if coder:
        accepted = get_coder(coder).wire_apis
        presets = [p for p in presets if p.wire_api in accepted]
    user_ids = {p.id for p in load_user_presets()}

    heading("Providers")
    for p in presets:
        marker = styled(" (user)", fg="yellow") if p.id in user_ids else ""
        info(f"{styled(p.id, fg='cyan')}  {p.display_name}  {p.base_url or '-'}{marker}")
    click.echo()


@providers.command("add")
@click.argument("provider_id")
@click.option("--name", required=True, help="Provider name.")
@click.option("--display-name", default=None, help="Name shown in listings (defaults to --name).")
@click.option("--base-url", required=True, help="API endpoint.")
@click.option(
    "--auth-type", type=click.Choice(AUTH_TYPES), default="bearer", show_default=True, help="Authentication style."
)
@click.option("--wire-api", type=click.Choice(WIRE_APIS), default="chat", show_default=True, help="Wire protocol.")
@click.option("--env-key", default=None, help="Env var Codex reads the API key from.")
@click.option("--models", default="", help="Comma-separated default models.")
def providers_add(
    provider_id: str,
    name: str,
    display_name: str | None,
    base_url: str,
    auth_type: str,
    wire_api: str,
    env_key: str | None,
    models: str,
) -> None:
    """Add or update a user-defined provider."""
    preset = ProviderPreset(
        id=provider_id,
        name=name,
        display_name=display_name or name,
        base_url=base_url,
        default_models=tuple(m.strip() for m in models.split(",") if m.strip()),
        auth_type=auth_type,
        wire_api=wire_api,
        env_key=env_key,
    )
    try:
        upsert_user_preset(preset)
    except InvalidPresetError as e:
        fail(str(e))
    if get_builtin_preset(provider_id):
        warn(f"'{provider_id}' overrides the built-in provider of the same id.")
    success(f"Provider '{provider_id}' saved.")


@providers.command("remove")
@click.argument("provider_id")
def providers_remove(provider_id: str) -> None:
    """Remove a user-defined provider."""
    if not delete_user_preset(provider_id):
        fail(f'Provider "{provider_id}" not found', "Only user-defined providers can be removed.")
    success(f"Provider '{provider_id}' removed.")


@providers.command("show")
@click.argument("provider_id")
def providers_show(provider_id: str) -> None:
    """Show one provider's settings."""
    preset = resolve_preset(provider_id)
    if preset is None:
        fail(f"Unknown provider: {provider_id}", "Run 'swixter providers list' to see available providers.")

    heading(preset.display_name)
    info(f"ID: {styled(preset.id, fg='cyan')}")
    info(f"Base URL: {preset.base_url or '-'}")
    info(f"Auth type: {preset.auth_type}")
    info(f"Wire API: {preset.wire_api}")
    info(f"Env key: {preset.env_key or '-'}")
    for model in preset.default_models:
        info(f"  - {model}")
    click.echo()


@cli.command("list")
def list_cmd() -> None:
    """List profiles and which coders use them."""
    config = load_config()
    if not config.profiles:
        warn("No profiles yet. Run: swixter create NAME --provider ID")
        return

    heading("Profiles")
    for name, profile in config.profiles.items():
        active_for = [c for c in config.coders if config.active_profile_name(c) == name]
        marker = styled(f" (active: {', '.join(active_for)})", fg="green") if active_for else ""
        info(f"{styled(name, bold=True)}  {profile.provider_id}{marker}")
    click.echo()


@cli.command()
@click.argument("name")
@click.option("--provider", "provider_id", required=True, help="Provider preset id.")
@click.option("--api-key", default="", help="API key.")
@click.option("--auth-token", default=None, help="Auth token (Claude Code only).")
@click.option("--base-url", default=None, help="Override the preset base URL.")
@click.option("--model", default=None, help="Model name.")
@click.option("--env-key", default=None, help="Env var Codex reads the API key from.")
@click.option("--haiku-model", default=None, help="ANTHROPIC_DEFAULT_HAIKU_MODEL.")
@click.option("--opus-model", default=None, help="ANTHROPIC_DEFAULT_OPUS_MODEL.")
@click.option("--sonnet-model", default=None, help="ANTHROPIC_DEFAULT_SONNET_MODEL.")
@click.option("--coder", type=CODER_CHOICE, default=None, help="Activate for this coder if it has none.")
def create(
    name: str,
    provider_id: str,
    api_key: str,
    auth_token: str | None,
    base_url: str | None,
    model: str | None,
    env_key: str | None,
    haiku_model: str | None,
    opus_model: str | None,
    sonnet_model: str | None,
    coder: str | None,
) -> None:
    """Create or update a profile."""
    roles = ModelRoles(
        default_haiku_model=haiku_model,
        default_opus_model=opus_model,
        default_sonnet_model=sonnet_model,
    )
    profile = Profile(
        name=name,
        provider_id=provider_id,
        api_key=api_key,
        auth_token=auth_token,
        base_url=base_url,
        model=model,
        env_key=env_key,
        models=None if roles.is_empty() else roles,
    )
    try:
        create_profile(profile, coder=coder)
    except UnknownProviderError as e:
        fail(str(e), "Run 'swixter providers' to see available providers.")
    except InvalidConfigError as e:
        fail(str(e))
    success(f"Profile '{name}' saved.")


@cli.command()
@click.argument("coder", type=CODER_CHOICE)
@click.argument("name")
def switch(coder: str, name: str) -> None:
    """Make NAME the active profile for CODER and apply it."""
    try:
        result = switch_profile(coder, name)
    except ProfileNotFoundError as e:
        fail(str(e), "Run 'swixter list' to see all profiles.")
    except UnknownProviderError as e:
        fail(str(e))
    _report(result)


@cli.command()
@click.argument("coder", type=CODER_CHOICE)
def apply(coder: str) -> None:
    """Write CODER's active profile into its config file."""
    try:
        result = apply_active(coder)
    except NoActiveProfileError as e:
        fail(str(e), f"Run 'swixter switch {coder} NAME' first.")
    except UnknownProviderError as e:
        fail(str(e))
    _report(result)


@cli.command()
@click.argument("coder", type=CODER_CHOICE)
def verify(coder: str) -> None:
    """Check that CODER's config file matches its active profile."""
    if verify_active(coder):
        success(f"{get_coder(coder).display_name} config is in sync.")
    else:
        warn(f"{get_coder(coder).display_name} config does not match the active profile.")


@cli.command()
@click.argument("coder", type=CODER_CHOICE)
def current(coder: str) -> None:
    """Show CODER's active profile."""
    profile = get_active_profile(coder)
    if profile is None:
        warn(f"No active profile for {coder}.")
        return
    preset = resolve_preset(profile.provider_id)
    info(f"{styled(profile.name, bold=True)}  {preset.display_name if preset else profile.provider_id}")
    info(f"Base URL: {profile.base_url or (preset.base_url if preset else '') or 'default'}")


@cli.command()
@click.argument("name")
def delete(name: str) -> None:
    """Delete a profile and clean it out of every coder config."""
    try:
        remove_profile_everywhere(name)
    except ProfileNotFoundError as e:
        fail(str(e), "Run 'swixter list' to see all profiles.")
    success(f"Profile '{name}' deleted.")


@cli.command(context_settings={"ignore_unknown_options": True, "allow_extra_args": True})
@click.argument("coder", type=CODER_CHOICE)
@click.option("--profile", "profile_name", default=None, help="Run with this profile instead of the active one.")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(coder: str, profile_name: str | None, args: tuple[str, ...]) -> None:
    """Run CODER with a profile; extra ARGS are passed through."""
    if profile_name:
        profile = get_profile(profile_name)
        if profile is None:
            fail(f'Profile "{profile_name}" not found', "Run 'swixter list' to see all profiles.")
    else:
        profile = get_active_profile(coder)
        if profile is None:
            fail("No active profile", f"Run 'swixter switch {coder} NAME' or pass --profile.")

    try:
        code = run_coder(coder, profile, list(args))
    except CoderNotInstalledError as e:
        fail(f"Run failed: {e}")
    except (UnknownProviderError, UnknownCoderError) as e:
        fail(str(e))
    sys.exit(code)


@cli.command("export")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--sanitize", is_flag=True, help="Mask API keys in the exported file.")
@click.option("--profile", "names", multiple=True, help="Export only these profiles.")
def export_cmd(file: str, sanitize: bool, names: tuple[str, ...]) -> None:
    """Export profiles to FILE."""
    try:
        count = export_profiles(file, sanitize=sanitize, names=list(names) or None)
    except ExportError as e:
        fail(str(e))
    success(f"Exported {count} profile(s) to {file}")


@cli.command("import")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--overwrite", is_flag=True, help="Replace profiles that already exist.")
@click.option("--allow-sanitized", is_flag=True, help="Import even if API keys were masked.")
def import_cmd(file: str, overwrite: bool, allow_sanitized: bool) -> None:
    """Import profiles from FILE."""
    try:
        result = import_profiles(file, overwrite=overwrite, allow_sanitized=allow_sanitized)
    except (ImportFormatError, SanitizedImportError, InvalidConfigError) as e:
        fail(str(e))
    success(f"Imported {result.imported}, skipped {result.skipped}.")
    for msg in result.errors:
        warn(msg)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
