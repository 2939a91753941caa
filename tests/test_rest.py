import json
import threading

import pytest
from werkzeug.test import Client

from xkcdsearch.gateway import SearchGateway, WordsGateway
from xkcdsearch.models import (
    AlreadyExistsError,
    Comic,
    SearchComic,
    SearchResult,
    UnavailableError,
    UpdateStats,
    UpdateStatus,
    XKCDInfo,
)
from xkcdsearch.rest import (
    drop_handler,
    indexed_search_handler,
    json_response,
    parse_limit,
    ping_handler,
    search_handler,
    update_handler,
    update_stats_handler,
    update_status_handler,
)
from xkcdsearch.search_service import SearchService
from xkcdsearch.storage import Storage
from xkcdsearch.update_gateway import UpdateGateway
from xkcdsearch.update_service import UpdateService
from xkcdsearch.words import normalize

SUPPORTED = "https://imgs.xkcd.com/comics/supported_features.png"
TREE = "https://imgs.xkcd.com/comics/tree.png"
APPLE = "https://imgs.xkcd.com/comics/an_apple_a_day.png"
CAPTCHA = "https://imgs.xkcd.com/comics/mine_captcha.png"
INSPIRATION = "https://imgs.xkcd.com/comics/inspiration.png"

PHRASES = [
    ("linux+cpu+video+machine+русские+хакеры", SUPPORTED),
    ("Binary Christmas Tree", TREE),
    ("apple a day -> keeps doctors away", APPLE),
    ("mines, captcha", CAPTCHA),
    ("newton apple's idea", INSPIRATION),
]


def _comic(comic_id, url, title, alt="", transcript=""):
    return Comic(
        id=comic_id,
        url=url,
        title=normalize(title),
        alt=normalize(alt),
        words=normalize(transcript),
    )


def _fill(storage):
    storage.add(
        _comic(
            619,
            SUPPORTED,
            "Supported Features",
            "Linux supports every video card",
            "A machine with a fast CPU runs linux and plays video",
        )
    )
    storage.add(_comic(835, TREE, "Tree", "Binary tree for Christmas", "A christmas tree"))
    storage.add(
        _comic(1102, APPLE, "An Apple a Day", "It keeps the doctors away", "apple day")
    )
    storage.add(_comic(1334, CAPTCHA, "Mine Captcha", "Mines everywhere", "captcha grid"))
    storage.add(
        _comic(1425, INSPIRATION, "Inspiration", "Newton", "Newton had an idea from an apple")
    )
    for number in range(12):
        storage.add(
            _comic(
                2000 + number,
                f"https://imgs.example.com/filler{number}.png",
                "Filler",
                "",
                "linux rocks",
            )
        )


@pytest.fixture
def storage():
    store = Storage(":memory:")
    store.migrate()
    yield store
    store.close()


@pytest.fixture
def search_service(storage):
    _fill(storage)
    return SearchService(storage, WordsGateway())


@pytest.fixture
def searcher(search_service):
    return SearchGateway(search_service)


def _urls(response):
    return [comic["url"] for comic in response.get_json()["comics"]]


# json_response and parse_limit


def test_json_response_encodes_body_and_status():
    response = json_response({"status": "started"}, 202)
    assert response.status_code == 202
    assert response.content_type == "application/json"
    assert response.get_data(as_text=True) == '{"status": "started"}\n'
    assert json.loads(response.get_data(as_text=True)) == {"status": "started"}


@pytest.mark.parametrize("text, expected", [("", 0), ("2", 2), ("0", 0), ("4294967295", 4294967295)])
def test_parse_limit_accepts_unsigned_decimal(text, expected):
    assert parse_limit(text) == expected


@pytest.mark.parametrize("text", ["-1", "asdf", "+1", " 1", "1_0", "4294967296", "1.5"])
def test_parse_limit_rejects_bad_values(text):
    with pytest.raises(ValueError):
        parse_limit(text)


# ping


class _Pinger:
    def __init__(self, error=None):
        self.error = error

    def ping(self):
        if self.error is not None:
            raise self.error


def test_ping_all_services_ok(storage, searcher):
    updater = UpdateGateway(UpdateService(storage, _BlockingSource(), WordsGateway()))
    app = ping_handler({"words": WordsGateway(), "update": updater, "search": searcher})
    response = Client(app).get("/")
    assert response.status_code == 200
    assert response.get_json() == {
        "replies": {"words": "ok", "update": "ok", "search": "ok"}
    }


def test_ping_reports_unavailable_service():
    app = ping_handler({"words": _Pinger(), "search": _Pinger(UnavailableError())})
    response = Client(app).get("/")
    assert response.status_code == 200
    assert response.get_json()["replies"] == {"words": "ok", "search": "unavailable"}


# search


def test_search_no_phrase(searcher):
    response = Client(search_handler(searcher)).get("/")
    assert response.status_code == 400
    assert response.get_json() == {"error": "bad request"}


def test_search_bad_limit_minus(searcher):
    response = Client(search_handler(searcher)).get("/", query_string={"limit": "-1"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "bad limit"}


def test_search_bad_limit_alpha(searcher):
    response = Client(search_handler(searcher)).get("/", query_string={"limit": "asdf"})
    assert response.status_code == 400


def test_search_too_large_limit(searcher):
    response = Client(search_handler(searcher)).get(
        "/", query_string={"limit": "101", "phrase": "linux"}
    )
    assert response.status_code == 400


def test_search_limit_2(searcher):
    response = Client(search_handler(searcher)).get(
        "/", query_string={"limit": "2", "phrase": "linux"}
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["total"] == 2
    assert len(body["comics"]) == 2


def test_search_limit_default(searcher):
    response = Client(search_handler(searcher)).get("/", query_string={"phrase": "linux"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["total"] == 10
    assert len(body["comics"]) == 10


@pytest.mark.parametrize("phrase, url", PHRASES)
def test_search_phrases(searcher, phrase, url):
    response = Client(search_handler(searcher)).get("/", query_string={"phrase": phrase})
    assert response.status_code == 200
    assert url in _urls(response)


def test_index_search_empty_index_returns_nothing(search_service, searcher):
    response = Client(indexed_search_handler(searcher)).get("/", query_string={"phrase": "linux"})
    assert response.status_code == 200
    assert response.get_json() == {"comics": [], "total": 0}


@pytest.mark.parametrize("phrase, url", PHRASES)
def test_index_search_phrases(search_service, searcher, phrase, url):
    search_service.rebuild_index()
    response = Client(indexed_search_handler(searcher)).get("/", query_string={"phrase": phrase})
    assert response.status_code == 200
    assert url in _urls(response)


def test_index_search_total_counts_all_matches(search_service, searcher):
    search_service.rebuild_index()
    response = Client(indexed_search_handler(searcher)).get(
        "/", query_string={"phrase": "linux", "limit": "2"}
    )
    body = response.get_json()
    assert len(body["comics"]) == 2
    assert body["total"] == 13


class _FailingSearcher:
    def __init__(self, error):
        self.error = error

    def find(self, phrase, limit):
        raise self.error

    def indexed_search(self, phrase, limit):
        raise self.error

    def ping(self):
        raise self.error


@pytest.mark.parametrize(
    "error, status, message",
    [
        (UnavailableError(), 503, "dependency unavailable"),
        (RuntimeError("boom"), 500, "internal error"),
    ],
)
def test_search_errors_map_to_status(error, status, message):
    for factory in (search_handler, indexed_search_handler):
        response = Client(factory(_FailingSearcher(error))).get(
            "/", query_string={"phrase": "linux"}
        )
        assert response.status_code == status
        assert response.get_json() == {"error": message}


def test_search_reports_given_result():
    class Fixed:
        def find(self, phrase, limit):
            assert (phrase, limit) == ("cat", 3)
            return SearchResult(comics=[SearchComic(id=7, url="u7")], total=1)

    response = Client(search_handler(Fixed())).get(
        "/", query_string={"phrase": "cat", "limit": "3"}
    )
    assert response.get_json() == {"comics": [{"id": 7, "url": "u7"}], "total": 1}


# update management


class _BlockingSource:
    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def last_id(self):
        return 1

    def get(self, comic_id):
        self.started.set()
        self.release.wait(5)
        return XKCDInfo(
            id=comic_id,
            url="https://imgs.example.com/barrel.png",
            title="Barrel",
            alt="Part one",
            description="A boy sits in a barrel floating in the ocean",
        )


def test_concurrent_updates_and_status(storage):
    source = _BlockingSource()
    source.release.set()
    gateway = UpdateGateway(UpdateService(storage, source, WordsGateway()))
    source.release.clear()
    results = {}

    def first_update():
        results["first"] = Client(update_handler(gateway)).post("/")

    thread = threading.Thread(target=first_update)
    thread.start()
    try:
        assert source.started.wait(5)
        second = Client(update_handler(gateway)).post("/")
        running = Client(update_status_handler(gateway)).get("/")
    finally:
        source.release.set()
        thread.join(5)

    assert second.status_code == 202
    assert second.get_json() == {"status": "already running"}
    assert running.get_json() == {"status": "running"}
    assert results["first"].status_code == 200
    assert results["first"].get_json() == {"status": "started"}

    idle = Client(update_status_handler(gateway)).get("/")
    assert idle.get_json() == {"status": "idle"}
    stats = Client(update_stats_handler(gateway)).get("/").get_json()
    assert stats["comics_fetched"] == stats["comics_total"] == 1
    assert stats["words_total"] > 0
    assert stats["words_unique"] > 0


def test_drop_empties_database(storage):
    _fill(storage)
    source = _BlockingSource()
    gateway = UpdateGateway(UpdateService(storage, source, WordsGateway()))
    response = Client(drop_handler(gateway)).delete("/")
    assert response.status_code == 200
    assert response.data == b""
    stats = Client(update_stats_handler(gateway)).get("/").get_json()
    assert stats == {
        "words_total": 0,
        "words_unique": 0,
        "comics_fetched": 0,
        "comics_total": 1,
    }
    status = Client(update_status_handler(gateway)).get("/").get_json()
    assert status == {"status": "idle"}


class _FakeUpdater:
    def __init__(self, error=None):
        self.error = error

    def _check(self):
        if self.error is not None:
            raise self.error

    def update(self):
        self._check()

    def stats(self):
        self._check()
        return UpdateStats(words_total=10, words_unique=4, comics_fetched=3, comics_total=5)

    def status(self):
        self._check()
        return UpdateStatus.UNKNOWN

    def drop(self):
        self._check()


def test_update_already_running_is_accepted():
    response = Client(update_handler(_FakeUpdater(AlreadyExistsError()))).post("/")
    assert response.status_code == 202
    assert response.get_json() == {"status": "already running"}


@pytest.mark.parametrize(
    "factory", [update_handler, update_stats_handler, update_status_handler, drop_handler]
)
@pytest.mark.parametrize(
    "error, status, message",
    [
        (UnavailableError(), 503, "dependency unavailable"),
        (RuntimeError("boom"), 500, "internal error"),
    ],
)
def test_update_errors_map_to_status(factory, error, status, message):
    response = Client(factory(_FakeUpdater(error))).open("/", method="POST")
    assert response.status_code == status
    assert response.get_json() == {"error": message}


def test_stats_payload_fields():
    response = Client(update_stats_handler(_FakeUpdater())).get("/")
    assert response.status_code == 200
    assert response.get_json() == {
        "words_total": 10,
        "words_unique": 4,
        "comics_fetched": 3,
        "comics_total": 5,
    }


def test_status_reports_enum_value():
    response = Client(update_status_handler(_FakeUpdater())).get("/")
    assert response.get_json() == {"status": "unknown"}