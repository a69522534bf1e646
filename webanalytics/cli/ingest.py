# ==============================================================================
# Ingestion Commands
# ==============================================================================
"""
Ingestion commands for the web analytics CLI.

Send a single collect or heartbeat event through the IngestionService,
for smoke-testing a deployment or replaying events by hand.
"""

from typing import Annotated, Optional

import typer

from webanalytics.cli.shared import (
    C,
    I,
    command_context,
    open_event_store,
    print_json,
)


# ==============================================================================
# Commands
# ==============================================================================


def collect(
    visitor_id: Annotated[str, typer.Option("--visitor", "-v", help="Visitor identifier")],
    path: Annotated[str, typer.Option("--path", "-p", help="Page path")],
    session_id: Annotated[
        Optional[str], typer.Option("--session", "-s", help="Session id from a previous collect")
    ] = None,
    title: Annotated[Optional[str], typer.Option("--title", help="Page title")] = None,
    referrer: Annotated[Optional[str], typer.Option("--referrer", "-r", help="Referrer URL")] = None,
    utm_source: Annotated[Optional[str], typer.Option("--utm-source", help="utm_source")] = None,
    utm_medium: Annotated[Optional[str], typer.Option("--utm-medium", help="utm_medium")] = None,
    utm_campaign: Annotated[Optional[str], typer.Option("--utm-campaign", help="utm_campaign")] = None,
    device_type: Annotated[Optional[str], typer.Option("--device", help="Device type")] = None,
    browser: Annotated[Optional[str], typer.Option("--browser", help="Browser name")] = None,
    os_name: Annotated[Optional[str], typer.Option("--os", help="Operating system")] = None,
    language: Annotated[Optional[str], typer.Option("--language", help="Browser language")] = None,
    ip: Annotated[
        Optional[str], typer.Option("--ip", help="Client IP for geo enrichment (default: 127.0.0.1)")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Record a page view.

    Continues the given session when it is still open, otherwise opens a new
    one. Prints the session id to send with the next event.

    Examples:
        webanalytics collect -v visitor-1 -p /pricing
        webanalytics collect -v visitor-1 -p /signup -s <session-id>
    """
    from webanalytics.services.factory import get_ingestion_service
    from webanalytics.services.ingestion import client_ip_from_headers

    event = {
        "visitor_id": visitor_id,
        "session_id": session_id,
        "path": path,
        "title": title,
        "referrer": referrer,
        "utm_source": utm_source,
        "utm_medium": utm_medium,
        "utm_campaign": utm_campaign,
        "device_type": device_type,
        "browser": browser,
        "os": os_name,
        "language": language,
    }

    with command_context(), open_event_store() as store:
        service = get_ingestion_service(store)
        result = service.collect(event, client_ip=client_ip_from_headers(None, ip))

    if json_output:
        print_json(result.model_dump())
        return

    label = "New session" if result.new_session else "Session continued"
    print(f"{C.BRIGHT_GREEN}{I.CHECK} {label}: {C.WHITE}{result.session_id}{C.RESET}")


def heartbeat(
    session_id: Annotated[str, typer.Option("--session", "-s", help="Session identifier")],
    scroll_depth: Annotated[
        Optional[int], typer.Option("--scroll", help="Scroll depth percent (0-100)")
    ] = None,
    path: Annotated[
        Optional[str], typer.Option("--path", "-p", help="Path the scroll depth applies to")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Send a heartbeat for an existing session.

    Exits with code 1 when the session does not exist.

    Examples:
        webanalytics heartbeat -s <session-id>
        webanalytics heartbeat -s <session-id> --scroll 75 -p /pricing
    """
    from webanalytics.services.factory import get_ingestion_service

    event = {"session_id": session_id, "scroll_depth": scroll_depth, "path": path}

    with command_context(), open_event_store() as store:
        service = get_ingestion_service(store)
        result = service.heartbeat(event)

    if json_output:
        print_json(result.model_dump())
    elif result.found:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Heartbeat recorded{C.RESET}")
    else:
        print(f"{C.BRIGHT_YELLOW}{I.CROSS} Session not found: {session_id}{C.RESET}")

    if not result.found:
        raise typer.Exit(1)
