from __future__ import annotations

from contestbot.scrapers.common import utc_now
from contestbot.services.delivery import DiscordSink
from contestbot.tasks.reminders import TaskState


def run_health_checks(service) -> dict:
    """Reachability of every enabled platform's sources and of the chat sink.

    Healthy means each platform has at least one reachable source and, when
    Discord is configured, the bot token is accepted.
    """
    services = {}
    platforms = {}
    healthy = True

    sink = service.reminders.sink
    if isinstance(sink, DiscordSink):
        discord_ok = sink.probe()
        services['discord'] = 'ok' if discord_ok else 'fail'
        healthy = healthy and discord_ok

    for platform in service.platforms:
        results = service.probe_sources(platform)
        for source_name, ok in results.items():
            services[source_name] = 'ok' if ok else 'fail'
        platform_ok = any(results.values())
        platforms[platform.value] = 'ok' if platform_ok else 'fail'
        healthy = healthy and platform_ok

    last_sources = {}
    for platform in service.platforms:
        last = service.fetcher.last_report(platform)
        if last is not None:
            last_sources[platform.value] = last.source

    return {
        'status': 'healthy' if healthy else 'unhealthy',
        'platforms': platforms,
        'services': services,
        'last_refresh_sources': last_sources,
        'armed_reminders': sum(1 for t in service.reminders.tasks if t.state is TaskState.ARMED),
        'timestamp': utc_now().isoformat(),
    }
