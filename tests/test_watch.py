import json
import os
import queue
import time
from pathlib import Path

import pytest

from oranda.config import load_config
from oranda.errors import (
    DocBookResolutionError,
    WatchChannelClosed,
    WatchSubscriptionError,
    WatchTransportError,
)
from oranda.project import Found, NotFound, SubProjects
from oranda.watch import (
    CLOSED,
    ChangeBatch,
    ChangeWatcher,
    Debouncer,
    PathChanged,
    WatchError,
    WatchSet,
    WatchSetBuilder,
    _QueueHandler,
)


def write_config(root: Path, data: dict) -> Path:
    path = root / "oranda.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def no_projects(root):
    return SubProjects()


class DummyEvent:
    def __init__(self, path, is_directory=False, event_type="modified", dest_path=""):
        self.src_path = path
        self.is_directory = is_directory
        self.event_type = event_type
        self.dest_path = dest_path


class DummyObserver:
    def __init__(self, refuse=()):
        self.refuse = {str(p) for p in refuse}
        self.scheduled = []
        self.calls = []

    def schedule(self, handler, path, recursive):
        if path in self.refuse:
            raise OSError(28, "inotify watch limit reached")
        self.scheduled.append((path, recursive))

    def start(self):
        self.calls.append("start")

    def stop(self):
        self.calls.append("stop")

    def join(self):
        self.calls.append("join")


def test_watch_set_scenario(tmp_path):
    (tmp_path / "README.md").write_text("# hi", encoding="utf-8")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "extra.md").write_text("extra", encoding="utf-8")
    config_path = write_config(tmp_path, {"dev": {"include_paths": ["docs/extra.md"]}})
    config = load_config(config_path, tmp_path)

    watch_set = WatchSetBuilder(config, config_path, detect_projects=no_projects).build()

    assert watch_set.existing() == [
        tmp_path / "README.md",
        tmp_path / "oranda.json",
        tmp_path / "docs" / "extra.md",
    ]


def test_watch_set_with_book_and_include_paths(tmp_path):
    (tmp_path / "README.md").write_text("# hi", encoding="utf-8")
    (tmp_path / "a.md").write_text("a", encoding="utf-8")
    (tmp_path / "b").mkdir()
    book = tmp_path / "docs"
    (book / "src").mkdir(parents=True)
    (book / "theme").mkdir()
    (book / "book.toml").write_text("[book]\ntitle = 'x'\n", encoding="utf-8")
    config_path = write_config(
        tmp_path, {"components": {"funding": False, "mdbook": {"path": "docs", "theme": False}}}
    )
    config = load_config(config_path, tmp_path)

    watch_set = WatchSetBuilder(
        config, config_path, include_paths=["a.md", "b"], detect_projects=no_projects
    ).build()

    assert list(watch_set) == [
        tmp_path / "README.md",
        tmp_path / "oranda.json",
        tmp_path / "a.md",
        tmp_path / "b",
        book / "book.toml",
        book / "src",
        book / "theme",
    ]


def test_watch_set_skips_theme_dir_with_custom_theme(tmp_path):
    book = tmp_path / "docs"
    (book / "src").mkdir(parents=True)
    (book / "book.toml").write_text("", encoding="utf-8")
    config_path = write_config(tmp_path, {"styles": {"theme": "dark"}, "components": {"mdbook": True}})
    config = load_config(config_path, tmp_path)

    paths = list(WatchSetBuilder(config, config_path, detect_projects=no_projects).build())

    assert book / "src" in paths
    assert book / "theme" not in paths


def test_watch_set_drops_missing_paths(tmp_path):
    (tmp_path / "README.md").write_text("# hi", encoding="utf-8")
    config = load_config(None, tmp_path)
    builder = WatchSetBuilder(config, include_paths=["missing.md"], detect_projects=no_projects)

    watch_set = builder.build()

    assert tmp_path / "missing.md" in list(watch_set)
    assert tmp_path / "oranda.json" in list(watch_set)
    assert watch_set.existing() == [tmp_path / "README.md"]


def test_watch_set_order_of_all_sources(tmp_path):
    config_path = write_config(
        tmp_path,
        {
            "build": {"additional_pages": {"Usage": "usage.md", "FAQ": "faq.md"}},
            "components": {"funding": {"md_path": "funding.md", "yml_path": "FUNDING.yml"}},
            "dev": {"include_paths": ["from-config.md"]},
        },
    )
    config = load_config(config_path, tmp_path)

    def projects(root):
        return SubProjects(rust=Found(root / "Cargo.toml"), javascript=Found(root / "package.json"))

    watch_set = WatchSetBuilder(
        config, config_path, include_paths=["from-cli.md"], detect_projects=projects
    ).build()

    names = [p.name for p in watch_set]
    assert names == [
        "README.md",
        "oranda.json",
        "from-cli.md",
        "from-config.md",
        "FUNDING.yml",
        "funding.md",
        "usage.md",
        "faq.md",
        "Cargo.toml",
        "package.json",
    ]


def test_book_resolution_error_is_not_fatal(tmp_path, capsys):
    config_path = write_config(tmp_path, {"components": {"mdbook": {"path": "nope"}}})
    config = load_config(config_path, tmp_path)

    def broken(book, root):
        raise DocBookResolutionError(root / book.path, "mdbook directory does not exist")

    builder = WatchSetBuilder(config, config_path, detect_projects=no_projects, resolve_book=broken)
    watch_set = builder.build()

    assert len(watch_set) == 2
    assert "Not watching mdbook" in capsys.readouterr().err


def test_each_step_is_independent(tmp_path):
    config_path = write_config(tmp_path, {"build": {"additional_pages": {"A": "a.md"}}})
    config = load_config(config_path, tmp_path)
    builder = WatchSetBuilder(config, config_path, detect_projects=no_projects)

    builder.add_additional_pages()
    builder.add_funding()

    assert list(builder.watch_set) == [tmp_path / "a.md"]


def test_debouncer_coalesces_burst():
    channel = queue.Queue()
    paths = [Path(f"/site/{i}.md") for i in range(5)]
    for path in paths:
        channel.put(PathChanged(path))
    slept = []
    debouncer = Debouncer(channel, delay=1.0, sleep=slept.append)

    batch = debouncer.next_batch()

    assert batch.paths == paths
    assert slept == [1.0]
    assert channel.empty()


def test_debouncer_collects_events_arriving_during_window():
    channel = queue.Queue()
    channel.put(PathChanged(Path("/site/a.md")))

    def sleep(delay):
        channel.put(PathChanged(Path("/site/a.md")))
        channel.put(PathChanged(Path("/site/b.md")))

    batch = Debouncer(channel, delay=0.01, sleep=sleep).next_batch()

    assert batch.paths == [Path("/site/a.md"), Path("/site/a.md"), Path("/site/b.md")]


def test_debouncer_errors_only_gives_empty_batch():
    channel = queue.Queue()
    first = WatchTransportError("one")
    second = WatchTransportError("two")
    channel.put(WatchError(first))
    channel.put(WatchError(second))
    reported = []

    batch = Debouncer(channel, delay=0, on_error=reported.append).next_batch()

    assert not batch
    assert batch.errors == [first, second]
    assert reported == [first, second]


def test_debouncer_separates_errors_from_paths(capsys):
    channel = queue.Queue()
    channel.put(PathChanged(Path("/a")))
    channel.put(WatchError(WatchTransportError("lost")))
    channel.put(PathChanged(Path("/b")))

    batch = Debouncer(channel, delay=0).next_batch()

    assert batch.paths == [Path("/a"), Path("/b")]
    assert "Error while watching for changes: lost" in capsys.readouterr().err


def test_debouncer_close_returns_pending_then_raises():
    channel = queue.Queue()
    channel.put(PathChanged(Path("/a")))
    channel.put(CLOSED)
    debouncer = Debouncer(channel, delay=0)

    assert debouncer.next_batch().paths == [Path("/a")]
    with pytest.raises(WatchChannelClosed):
        debouncer.next_batch()


def test_debouncer_close_while_idle():
    channel = queue.Queue()
    channel.put(CLOSED)
    with pytest.raises(WatchChannelClosed):
        Debouncer(channel, delay=0).next_batch()


def test_change_batch_truthiness():
    assert not ChangeBatch()
    assert not ChangeBatch(errors=[RuntimeError("x")])
    assert ChangeBatch(paths=[Path("/a")])


def test_change_watcher_subscribes_files_and_dirs(tmp_path):
    tmp_path = tmp_path.resolve()
    readme = tmp_path / "README.md"
    readme.write_text("hi", encoding="utf-8")
    docs = tmp_path / "docs"
    docs.mkdir()
    observer = DummyObserver()
    watcher = ChangeWatcher(observer=observer)

    watched = watcher.subscribe_all([readme, docs])

    assert watched == [readme, docs]
    assert observer.scheduled == [(str(tmp_path), False), (str(docs), True)]


def test_change_watcher_skips_refused_path(tmp_path, capsys):
    tmp_path = tmp_path.resolve()
    readme = tmp_path / "README.md"
    readme.write_text("hi", encoding="utf-8")
    docs = tmp_path / "docs"
    docs.mkdir()
    watcher = ChangeWatcher(observer=DummyObserver(refuse=[docs]))

    watched = watcher.subscribe_all([readme, docs])

    assert watched == [readme]
    assert "could not watch" in capsys.readouterr().err


def test_change_watcher_fails_when_nothing_watchable(tmp_path):
    tmp_path = tmp_path.resolve()
    docs = tmp_path / "docs"
    docs.mkdir()
    watcher = ChangeWatcher(observer=DummyObserver(refuse=[docs]))

    with pytest.raises(WatchSubscriptionError):
        watcher.subscribe_all([docs])


def test_change_watcher_stop_closes_channel():
    observer = DummyObserver()
    watcher = ChangeWatcher(observer=observer)
    with watcher:
        pass
    assert observer.calls == ["start", "stop", "join"]
    assert watcher.channel.get_nowait() is CLOSED


def test_handler_filters_unwatched_paths(tmp_path):
    tmp_path = tmp_path.resolve()
    channel = queue.Queue()
    handler = _QueueHandler(channel)
    handler.files.add(tmp_path / "README.md")
    handler.dirs.append(tmp_path / "docs")

    handler.on_any_event(DummyEvent(str(tmp_path / "README.md")))
    handler.on_any_event(DummyEvent(str(tmp_path / "docs" / "a" / "b.md")))
    handler.on_any_event(DummyEvent(str(tmp_path / "public" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "docs"), is_directory=True))
    handler.on_any_event(DummyEvent(str(tmp_path / "README.md"), event_type="opened"))

    events = []
    while not channel.empty():
        events.append(channel.get_nowait())
    assert events == [
        PathChanged(tmp_path / "README.md"),
        PathChanged(tmp_path / "docs" / "a" / "b.md"),
    ]


def test_handler_reports_move_destination(tmp_path):
    tmp_path = tmp_path.resolve()
    channel = queue.Queue()
    handler = _QueueHandler(channel)
    handler.dirs.append(tmp_path)

    handler.on_any_event(
        DummyEvent(str(tmp_path / "a.md~"), event_type="moved", dest_path=str(tmp_path / "a.md"))
    )

    assert channel.get_nowait() == PathChanged(tmp_path / "a.md~")
    assert channel.get_nowait() == PathChanged(tmp_path / "a.md")


def test_handler_reports_undecodable_path():
    channel = queue.Queue()
    handler = _QueueHandler(channel)

    handler._put(None)

    event = channel.get_nowait()
    assert isinstance(event, WatchError)
    assert isinstance(event.cause, WatchTransportError)


def test_watch_set_len_and_append():
    watch_set = WatchSet()
    watch_set.append("a")
    watch_set.extend(["b", Path("c")])
    assert len(watch_set) == 3
    assert list(watch_set) == [Path("a"), Path("b"), Path("c")]


def test_not_found_projects_contribute_nothing():
    assert SubProjects(rust=NotFound(), javascript=NotFound()).manifests() == []


def test_subscription_through_symlink_matches_real_event_paths(tmp_path):
    real = (tmp_path / "real").resolve()
    real.mkdir()
    (real / "README.md").write_text("hi", encoding="utf-8")
    link = tmp_path / "link"
    link.symlink_to(real, target_is_directory=True)
    observer = DummyObserver()
    watcher = ChangeWatcher(observer=observer)

    watcher.subscribe(link / "README.md")
    # the backend reports the real location of the file
    watcher._handler._put(str(real / "README.md"))

    assert observer.scheduled == [(str(real), False)]
    assert watcher.channel.get_nowait() == PathChanged(real / "README.md")


def collect_changes(channel, expected, timeout=5.0):
    """Gather PathChanged events until every expected path was seen."""
    seen = set()
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline and not expected <= seen:
        try:
            event = channel.get(timeout=0.1)
        except queue.Empty:
            continue
        if isinstance(event, PathChanged):
            seen.add(event.path)
    # let late events for unwatched paths show up before checking filtering
    time.sleep(0.3)
    while not channel.empty():
        event = channel.get_nowait()
        if isinstance(event, PathChanged):
            seen.add(event.path)
    return seen


def test_real_observer_reports_watched_changes_only(tmp_path):
    root = tmp_path.resolve()
    readme = root / "README.md"
    readme.write_text("# hi", encoding="utf-8")
    (root / "other.md").write_text("other", encoding="utf-8")
    docs = root / "docs"
    docs.mkdir()
    public = root / "public"
    public.mkdir()
    watcher = ChangeWatcher()
    watcher.subscribe_all([readme, docs])

    with watcher:
        time.sleep(0.5)
        (public / "index.html").write_text("built", encoding="utf-8")
        (root / "other.md").write_text("changed", encoding="utf-8")
        readme.write_text("# changed", encoding="utf-8")
        (docs / "x.md").write_text("new page", encoding="utf-8")
        seen = collect_changes(watcher.channel, {readme, docs / "x.md"})

    assert readme in seen
    assert docs / "x.md" in seen
    assert public / "index.html" not in seen
    assert root / "other.md" not in seen


def test_real_observer_reports_atomic_replace_as_watched_file(tmp_path):
    root = tmp_path.resolve()
    readme = root / "README.md"
    readme.write_text("# hi", encoding="utf-8")
    watcher = ChangeWatcher()
    watcher.subscribe_all([readme])

    with watcher:
        time.sleep(0.5)
        tmp_file = root / ".README.md.tmp"
        tmp_file.write_text("# saved by an editor", encoding="utf-8")
        os.replace(tmp_file, readme)
        seen = collect_changes(watcher.channel, {readme})

    assert readme in seen
    assert tmp_file not in seen
