# xkcdsearch

Search the xkcd archive by free-text phrase.

The package downloads comic metadata (title, alt text, transcript) from the
xkcd JSON API, reduces the text to normalised English word stems, stores it
in a SQLite database, and answers search queries through a small JSON HTTP
API.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running

The package installs one command:

```
xkcdsearch --config config.yaml
```

`--config` defaults to `config.yaml`. The command runs everything in one
process: the word normaliser, the comic store, the updater, the search
service with its in-memory index, and a threaded HTTP server. It stops on
Ctrl-C or SIGTERM. If the configuration cannot be read, it logs the error
and exits with status 1.

A minimal configuration:

```yaml
log_level: INFO
api_server:
  address: localhost:8080
admin_user: admin
admin_password: password
db_address: comics.sqlite3
xkcd:
  url: xkcd.com
  concurrency: 8
```

### Settings

Each setting is taken from its environment variable if that is set,
otherwise from the YAML file, otherwise from the default. `admin_user` and
`admin_password` have no default and must be given.

| YAML key             | Environment          | Default        | Used for                                   |
|----------------------|----------------------|----------------|--------------------------------------------|
| `log_level`          | `LOG_LEVEL`          | `DEBUG`        | `DEBUG`, `INFO` or `ERROR`; others rejected |
| `api_server.address` | `API_ADDRESS`        | `localhost:80` | `host:port` the HTTP server listens on     |
| `admin_user`         | `ADMIN_USER`         | required       | login name                                 |
| `admin_password`     | `ADMIN_PASSWORD`     | required       | login password                             |
| `token_ttl`          | `TOKEN_TTL`          | `2m`           | lifetime of login tokens                   |
| `search_concurrency` | `SEARCH_CONCURRENCY` | `10`           | simultaneous `/api/search` requests        |
| `search_rate`        | `SEARCH_RATE`        | `100`          | `/api/isearch` requests per second         |
| `db_address`         | `DB_ADDRESS`         | `localhost:82` | path of the SQLite database file           |
| `xkcd.url`           | `XKCD_URL`           | `xkcd.com`     | comic site; `https://` is added if missing |
| `xkcd.concurrency`   | `XKCD_CONCURRENCY`   | `1`            | download workers (capped at 64)            |
| `xkcd.timeout`       | `XKCD_TIMEOUT`       | `10s`          | HTTP timeout per request                   |
| `index_ttl`          | `INDEX_TTL`          | `24h`          | period of the periodic index rebuild       |

Set `db_address` to a file path: the default is used as a file name as is.

Durations are written as in `300ms`, `5s`, `2m`, `1h30m` (units `ns`, `us`,
`ms`, `s`, `m`, `h`); a plain YAML number is taken as seconds.

The loaders also accept `api_server.timeout`, `words_address`,
`update_address`, `search_address`, `broker.address` and
`xkcd.check_period`, but the command does not use them.

## HTTP API

| Method and path       | What it does                                                   |
|-----------------------|----------------------------------------------------------------|
| `GET /api/ping`       | `{"replies": {...}}` with `ok` or `unavailable` for `words`, `update`, `search` |
| `POST /api/login`     | Exchanges admin credentials for a token                        |
| `GET /api/search`     | Ranked search over the stored comics                           |
| `GET /api/isearch`    | The same ranking, served from the in-memory index              |
| `POST /api/db/update` | Fetches missing comics (token required)                        |
| `GET /api/db/stats`   | Word and comic counters                                        |
| `GET /api/db/status`  | `{"status": "idle"}` or `{"status": "running"}`                |
| `DELETE /api/db`      | Empties the database (token required)                          |

### Logging in

```
curl -X POST localhost:8080/api/login \
     -d '{"name": "admin", "password": "password"}'
```

The response body is the token, as plain text. Pass it to the protected
endpoints:

```
curl -X POST localhost:8080/api/db/update -H "Authorization: Token token"
```

Wrong credentials, and missing, malformed or expired tokens, give
`401 unauthorized`; a body that is not a JSON object gives `400`. Tokens are
signed with a random key made at start-up, so they stop working when the
process restarts.

### Searching

```
curl 'localhost:8080/api/search?phrase=binary+christmas+tree&limit=5'
```

The answer has the shape `{"comics": [{"id": ..., "url": ...}], "total": ...}`.

- `limit` defaults to 10 and may not exceed 100.
- An empty phrase, a limit that is not a non-negative decimal integer, or a
  limit above 100 gives `400`.
- A phrase that normalises to no words (for example only stop words) gives
  `500 {"error": "internal error"}`.
- For `/api/search`, `total` is the number of comics returned; for
  `/api/isearch` it is the number of all matching comics.
- `/api/search` serves at most `search_concurrency` requests at once and
  answers the rest with `503`; `/api/isearch` makes excess requests wait.

Ranking: each comic scores `100` per distinct query word it contains
anywhere, plus `5` per query word in the title, `3` per word in the alt
text and `1` per word in the transcript. Comics are ordered by score, then
by id.

### Updating

`POST /api/db/update` downloads every comic up to the newest one that the
database does not hold yet, and answers `200 {"status": "started"}` once it
has finished. While an update or a drop is in progress, another update
answers `202 {"status": "already running"}` and a drop answers `500`.
Comic numbers the site does not have are stored empty, so they are not
fetched again. After each successful update or drop the search index is
rebuilt; it is also rebuilt at start-up and every `index_ttl`.

`GET /api/db/stats` returns `words_total`, `words_unique`,
`comics_fetched` and `comics_total` (the newest comic number on the site).

## Using the library

- `xkcdsearch.words.normalize(phrase)` lower-cases the phrase, splits it on
  anything that is not `a`–`z` or `0`–`9`, drops English stop words, stems
  the rest (`xkcdsearch.stemmer.stem`, English Snowball rules), keeps
  numbers as they are, and removes duplicates keeping first-seen order.
  `WordsService.norm` does the same but raises `PhraseTooLargeError` for
  phrases over 4096 bytes of UTF-8.
- `xkcdsearch.search_service.score_comic` and `rank_comics` implement the
  ranking; `SearchService` adds validation, the database search and the
  indexed search over `xkcdsearch.index.InvertedIndex`.
- `xkcdsearch.update_service.UpdateService` fetches and stores comics using
  `xkcdsearch.xkcd.XKCDClient` and `xkcdsearch.storage.Storage`.
- `xkcdsearch.config` has `load_api_config`, `load_search_config`,
  `load_update_config` and `parse_duration`.
- `xkcdsearch.server.build_api_app` returns the WSGI application for any
  objects providing the search, update and ping methods.

```python
from xkcdsearch.words import normalize

normalize("Binary Christmas Tree")
```

## Limits

The package runs as a single process. It has no separate networked words,
search or update services, no PostgreSQL storage and no external message
broker: the components talk to each other in memory, the comic store is a
local SQLite file, and database-updated events are delivered by the
in-process `xkcdsearch.events.Broker`.