"""CLI entrypoint for travio_geo."""

from __future__ import annotations

import argparse
import json

from travio_geo.logging_config import setup_logging


def main() -> None:
    setup_logging()

    parser = argparse.ArgumentParser(prog="travio-geo")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve")

    detect_parser = sub.add_parser("detect")
    detect_parser.add_argument("text")

    nearest_parser = sub.add_parser("nearest")
    nearest_parser.add_argument("lng", type=float)
    nearest_parser.add_argument("lat", type=float)
    nearest_parser.add_argument("--max-distance", type=float, default=None)

    cities_parser = sub.add_parser("cities")
    cities_parser.add_argument("--query", "-q", default=None)

    try_parser = sub.add_parser("try")
    try_parser.add_argument("reply", nargs="?")

    args = parser.parse_args()

    if args.command == "serve":
        _serve()
    elif args.command == "detect":
        _detect_once(args.text)
    elif args.command == "nearest":
        _nearest_once(args.lng, args.lat, args.max_distance)
    elif args.command == "cities":
        _list_cities(args.query)
    elif args.command == "try":
        _try_mode(args.reply)


def _serve() -> None:
    import uvicorn

    from travio_geo.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "travio_geo.api:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=(settings.env == "development"),
        log_level=settings.log_level.lower(),
    )


def _detect_once(text: str) -> None:
    from travio_geo.mentions import get_detector

    event = get_detector().detect(text)
    if event is None:
        print(json.dumps(None))
        return
    out = {"kind": event.kind.value, "raw_text": event.raw_text}
    if event.place is not None:
        out["place"] = {
            "name": event.place.name,
            "longitude": event.place.longitude,
            "latitude": event.place.latitude,
        }
    print(json.dumps(out, ensure_ascii=False, indent=2))


def _nearest_once(lng: float, lat: float, max_distance: float | None) -> None:
    from travio_geo.config import get_settings
    from travio_geo.gazetteer import get_gazetteer

    if max_distance is None:
        max_distance = get_settings().navigation.click_max_distance
    place = get_gazetteer().nearest(lng, lat, max_distance)
    if place is None:
        print(f"No supported city within {max_distance}° of ({lng}, {lat})")
        return
    print(f"{place.name}: {place.longitude:.4f}, {place.latitude:.4f}")


def _list_cities(query: str | None) -> None:
    from travio_geo.gazetteer import get_gazetteer

    gazetteer = get_gazetteer()
    places = gazetteer.search(query) if query else list(gazetteer)
    for place in places:
        print(f"{place.name:<20} {place.longitude:>10.4f} {place.latitude:>9.4f}")


def _try_mode(initial_reply: str | None) -> None:
    """Feed assistant replies by hand and watch where the globe goes."""
    from travio_geo.navigation import NavigationController
    from travio_geo.orchestrator import SyncOrchestrator

    session = SyncOrchestrator(navigation=NavigationController())

    def run_once(reply: str) -> None:
        seen = len(session.notices)
        event = session.on_assistant_reply(reply)
        _print_cli_result(session, event, session.notices[seen:])

    if initial_reply:
        run_once(initial_reply)
        return

    print("Globe Sync Interactive")
    print("Type an assistant reply; 'click <lng> <lat>' to click the globe;")
    print("'reset' to return to the overview. Type 'quit' to exit.")

    while True:
        line = input("reply> ").strip()
        if not line:
            continue
        if line.lower() in {"quit", "exit", "q"}:
            break
        if line.lower() == "reset":
            session.reset_all()
            print(f"Camera target: {session.navigation.state.target}")
            continue
        if line.lower().startswith("click "):
            try:
                lng, lat = (float(v) for v in line.split()[1:3])
            except ValueError:
                print("usage: click <lng> <lat>")
                continue
            seen = len(session.notices)
            place = session.on_globe_click(lng, lat)
            print(f"Clicked: {place.name if place else '(nothing)'}")
            for notice in session.notices[seen:]:
                print(f"Notice: {notice.text}")
            print(f"Active city: {session.context.active_city}")
            continue
        run_once(line)


def _print_cli_result(session, event, notices) -> None:
    print("\n" + "-" * 72)
    if event is None:
        print("No place mentioned.")
    elif event.is_recognized:
        print(f"Recognized:  {event.place.name}")
    else:
        print(f"Unrecognized: {event.raw_text}")

    for notice in notices:
        print(f"Notice:      {notice.text}")

    state = session.navigation.state
    print(f"Mode:        {state.mode.value}")
    print(f"Target:      {state.target}")
    print(f"Active city: {session.context.active_city}")


if __name__ == "__main__":
    main()
