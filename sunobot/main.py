#!/usr/bin/env python3
"""SunoBot: automated song creation and download on suno.com."""

import json
import logging
import os
import sys

# Add the sunobot directory to the path (skip when frozen via PyInstaller)
if not getattr(sys, 'frozen', False):
    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import click
from playwright.sync_api import Error as PlaywrightError

from automation import browser_profiles
from automation.browser_session import BrowserSession
from automation.errors import SunoBotError
from automation.locator import LocatorResolver
from automation.models import JobRequest
from automation.selector_health import SelectorHealthChecker
from automation.selector_registry import SelectorRegistry
from automation.suno_bot import SunoBot
from config_store import ConfigStore
from logging_config import mask_email, setup_logging
from secure_config import CredentialStore, has_keyring

logger = logging.getLogger("sunobot.cli")

EXIT_OK = 0
EXIT_JOB_FAILURES = 1
EXIT_FATAL = 2


def print_event(event: dict) -> None:
    """Status sink: one line per event."""
    line = f"[{event['status']}] {event.get('message', '')}".rstrip()
    if event["status"] in ("manual_action_required", "challenge_presented"):
        click.secho(line, fg="yellow", bold=True)
    elif event["status"] in ("job_failed", "failed", "auth_failed", "rate_limited"):
        click.secho(line, fg="red")
    else:
        click.echo(line)


def execute_batch(bot: SunoBot, run) -> int:
    """Run *run(bot)* and translate the outcome into an exit code."""
    try:
        result = run(bot)
    except SunoBotError as e:
        click.secho(f"Error: {e.user_message}", fg="red", err=True)
        return EXIT_FATAL if e.fatal_for_session else EXIT_JOB_FAILURES
    except PlaywrightError as e:
        click.secho(f"Browser error: {e}", fg="red", err=True)
        return EXIT_FATAL
    except KeyboardInterrupt:
        click.echo("Interrupted", err=True)
        return EXIT_JOB_FAILURES

    click.echo(f"\n{result.success_count} succeeded, {result.failure_count} failed")
    for artifact in result.artifacts:
        click.echo(f"  {artifact.path} ({artifact.size_bytes} bytes)")
    if result.failure_count or not result.success_count:
        return EXIT_JOB_FAILURES
    return EXIT_OK


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              default=None, help="Config file (default ~/.sunobot/config.json)")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to the console")
@click.pass_context
def cli(ctx, config_path, verbose):
    """SunoBot: create songs on suno.com and download the results.

    Commands:
      run              - Create one song (optionally several rounds)
      batch            - Create every song in a JSON file
      login            - Sign in once and keep the browser profile
      credentials      - Manage the saved email/password
      profile          - Inspect or clear browser profiles
      config           - Show or change settings
      check-selectors  - Check that the page selectors still match
    """
    setup_logging(console_level=logging.INFO if verbose else logging.WARNING)
    ctx.obj = ConfigStore(config_path)


def _apply_browser_options(config, headless):
    if headless is not None:
        config.set_config("headless", headless, persist=False)


@cli.command()
@click.option("--style", "-s", required=True, help="Style tags/description")
@click.option("--title", "-t", default="", help="Song title")
@click.option("--lyrics", "-l", default="", help="Lyrics (omit for instrumental)")
@click.option("--lyrics-file", type=click.Path(exists=True, dir_okay=False),
              help="Read lyrics from a file")
@click.option("--rounds", type=click.IntRange(min=1), default=1,
              help="Submit the same song N times")
@click.option("--headless/--headed", default=None, help="Override the headless setting")
@click.pass_obj
def run(config, style, title, lyrics, lyrics_file, rounds, headless):
    """Create one song and download its variants.

    Example:
        sunobot run -s "indie pop, acoustic" -t "Morning Walk" --lyrics-file walk.txt
    """
    if lyrics_file:
        with open(lyrics_file, encoding="utf-8") as f:
            lyrics = f.read()
    try:
        request = JobRequest(style=style, title=title, lyrics=lyrics)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    _apply_browser_options(config, headless)

    bot = SunoBot(config, status_callback=print_event)
    if rounds > 1:
        code = execute_batch(bot, lambda b: b.run_rounds(request, rounds))
    else:
        code = execute_batch(bot, lambda b: b.submit_and_retrieve(request))
    sys.exit(code)


def load_requests(path: str) -> list[JobRequest]:
    """Read a JSON list of ``{title, style, lyrics}`` objects."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Batch file must contain a JSON list")
    requests = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"Entry {i + 1} is not an object")
        try:
            requests.append(JobRequest.from_dict(item))
        except ValueError as e:
            raise ValueError(f"Entry {i + 1}: {e}") from e
    return requests


@cli.command()
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--fresh-session", is_flag=True,
              help="Start a new browser session for every song")
@click.option("--headless/--headed", default=None, help="Override the headless setting")
@click.pass_obj
def batch(config, json_file, fresh_session, headless):
    """Create every song listed in a JSON file.

    JSON format: [{"title": "...", "style": "...", "lyrics": "..."}, ...]
    """
    try:
        requests = load_requests(json_file)
    except (ValueError, json.JSONDecodeError) as e:
        raise click.ClickException(f"{json_file}: {e}") from e
    click.echo(f"Loaded {len(requests)} song(s) from {json_file}")
    _apply_browser_options(config, headless)

    bot = SunoBot(config, status_callback=print_event)
    sys.exit(execute_batch(
        bot, lambda b: b.run_batch(requests, shared_session=not fresh_session)
    ))


@cli.command()
@click.pass_obj
def login(config):
    """Sign in once; the browser profile keeps the session."""
    config.set_config("headless", False, persist=False)
    bot = SunoBot(config, status_callback=print_event)
    try:
        bot.initialize()
    except SunoBotError as e:
        click.secho(f"Error: {e.user_message}", fg="red", err=True)
        sys.exit(EXIT_FATAL)
    finally:
        bot.close()
    click.secho("Signed in. The session is saved in the browser profile.", fg="green")


# ----------------------------------------------------------------------
# credentials
# ----------------------------------------------------------------------

@cli.group()
def credentials():
    """Manage the saved sign-in email and password."""


@credentials.command("set")
@click.option("--email", prompt=True, help="Account email")
@click.password_option(help="Account password")
@click.pass_obj
def credentials_set(config, email, password):
    """Save the email and password (password goes to the system keyring)."""
    try:
        CredentialStore(config).save(email.strip(), password)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    where = "system keyring" if has_keyring() else "config file"
    click.echo(f"Saved credentials for {mask_email(email)} ({where})")


@credentials.command("clear")
@click.pass_obj
def credentials_clear(config):
    """Forget the saved email and password."""
    CredentialStore(config).clear()
    click.echo("Credentials cleared")


@credentials.command("show")
@click.pass_obj
def credentials_show(config):
    """Show which account is saved (never the password)."""
    creds = CredentialStore(config).load()
    click.echo(f"Auth method: {config.auth_method}")
    if creds is None:
        click.echo("No credentials saved")
        return
    click.echo(f"Email: {mask_email(creds.email)}")
    click.echo(f"Keyring available: {'yes' if has_keyring() else 'no'}")


# ----------------------------------------------------------------------
# profile
# ----------------------------------------------------------------------

@cli.group()
def profile():
    """Inspect or clear persistent browser profiles."""


@profile.command("list")
def profile_list():
    """List browser profiles with their size."""
    profiles = browser_profiles.list_profiles()
    if not profiles:
        click.echo("No profiles")
        return
    for info in profiles:
        size_mb = info["size_bytes"] / (1024 * 1024)
        locked = " (in use)" if info["locked"] else ""
        click.echo(f"{info['name']:<20} {size_mb:8.1f} MB  {info['path']}{locked}")


@profile.command("clear-cache")
@click.argument("name", required=False)
@click.pass_obj
def profile_clear_cache(config, name):
    """Delete cached files but keep the signed-in session."""
    name = name or config.get_config("profile_name")
    if browser_profiles.clear_cache(name):
        click.echo(f"Cleared cache for {name}")
    else:
        click.echo(f"No cache found for {name}")


@profile.command("clear")
@click.argument("name", required=False)
@click.confirmation_option(prompt="Delete the whole profile? You will need to sign in again.")
@click.pass_obj
def profile_clear(config, name):
    """Delete a profile entirely (forces a fresh sign-in)."""
    name = name or config.get_config("profile_name")
    if browser_profiles.clear_profile(name):
        click.echo(f"Deleted profile {name}")
    else:
        click.echo(f"No profile named {name}")


# ----------------------------------------------------------------------
# config
# ----------------------------------------------------------------------

@cli.group("config")
def config_group():
    """Show or change settings."""


@config_group.command("show")
@click.pass_obj
def config_show(config):
    """Print the effective settings."""
    for key, value in sorted(config.as_dict().items()):
        if key == "email":
            value = mask_email(value) if value else ""
        elif key == "suno_password":
            continue
        click.echo(f"{key} = {json.dumps(value)}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_obj
def config_set(config, key, value):
    """Set KEY to VALUE (parsed as JSON when possible)."""
    if key == "suno_password":
        raise click.BadParameter("Use 'sunobot credentials set' for the password")
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    config.set_config(key, parsed, persist=False)
    if key == "auth_method":
        try:
            config.auth_method
        except ValueError as e:
            raise click.BadParameter(str(e)) from e
    config.save()
    click.echo(f"{key} = {json.dumps(parsed)}")


# ----------------------------------------------------------------------
# check-selectors
# ----------------------------------------------------------------------

@cli.command("check-selectors")
@click.pass_obj
def check_selectors(config):
    """Load the create and library pages and check every selector role."""
    registry = SelectorRegistry(
        overrides_path=config.get_config("selector_overrides_path") or None
    )
    session = BrowserSession(config)
    try:
        page = session.open()
        resolver = LocatorResolver(page, registry, debug_dir=config.debug_dir)
        report = SelectorHealthChecker(resolver, config.base_url).run_checks()
    except (SunoBotError, PlaywrightError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(EXIT_FATAL)
    finally:
        session.close()
    click.echo(report.summary())
    sys.exit(EXIT_OK if report.failed == 0 else EXIT_JOB_FAILURES)


def main():
    cli()


if __name__ == "__main__":
    main()
