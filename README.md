# sqzproxy

Building blocks for a proxy that sits in front of chat completion APIs
and records how much prompt compression saves. The package provides:

- **Request models** for OpenAI-style chat completions
  (`sqzproxy.openai_types.ChatCompletionRequest`, `Message`) and
  Anthropic-style messages (`sqzproxy.anthropic_types.MessagesRequest`,
  `AnthropicMessage`). Both read and write JSON (`from_json`, `to_json`,
  `from_dict`, `to_dict`), keep unknown fields in `extra` and write them
  back unchanged, and let you read or rewrite only the text parts of
  messages with `texts()` and `map_texts(func)`. `MessagesRequest` also
  has `system_texts()` and `map_system_texts(func)` for the system prompt.
  Malformed input raises `ValueError`.
- **A SQLite store** (`sqzproxy.store.Store`) for compression rules,
  per-request compression statistics, per-rule statistics and shadow
  experiments. The store creates or upgrades its schema when it opens
  (`sqzproxy.migrations.run_migrations`). Failures raise `StoreError`;
  a missing record raises its subclass `RecordNotFound`.
- **Admin HTTP endpoints** built on Starlette (`sqzproxy.admin.build_app`).
  They manage rules and report statistics. Every response carries the
  `X-Request-ID` header (taken from the request or newly generated) and
  the `X-Response-Time` header, via `sqzproxy.middleware`.
- **Error mapping** (`sqzproxy.errors.ProxyError`, `ErrorKind`) to JSON
  error bodies with a matching HTTP status.
- **Shadow-testing helpers** (`sqzproxy.shadow`): `cosine_similarity`,
  `ShadowConfig` and a sampling `ShadowRunner`.

## Installation

```
pip install sqzproxy
```

## Using the store

```python
from sqzproxy.models import RuleRow, utc_timestamp
from sqzproxy.store import Store, RecordNotFound

with Store.in_memory() as store:
    now = utc_timestamp()
    store.create_rule(RuleRow(
        id="r1", pattern="please", replacement="", layer="learned",
        domain=None, confidence=0.0, samples=0, enabled=True,
        priority=0, created_at=now, updated_at=now,
    ))
    print(store.list_rules(None, None, 50, 0))
    store.update_rule_stats("r1", 3)
    print(store.get_rule_stats("r1"))
    print(store.get_stats_overview().to_dict())
    try:
        store.get_rule("missing")
    except RecordNotFound:
        print("no such rule")
```

To keep the data on disk, pass a path: `Store("sqz.db")`. File-backed
databases use WAL journal mode. The store is safe to share between
threads.

## Working with requests

```python
from sqzproxy.openai_types import ChatCompletionRequest

req = ChatCompletionRequest.from_json(
    b'{"model":"gpt-4","messages":[{"role":"user","content":"hello there"}],"temperature":0.2}'
)
for msg in req.messages:
    msg.map_texts(str.upper)
print(req.to_json())  # "temperature" is kept as it was
```

## Serving the admin API

`build_app(store)` returns a Starlette application. You can run it with
any ASGI server, for example uvicorn if you have it installed:

```python
import uvicorn
from sqzproxy.admin import build_app
from sqzproxy.store import Store

uvicorn.run(build_app(Store("sqz.db")), host="127.0.0.1", port=8080)
```

Routes:

| Method | Path                        | Purpose                              |
|--------|-----------------------------|--------------------------------------|
| GET    | `/health`                   | liveness check                       |
| GET    | `/admin/rules`              | list rules (`limit`, `offset`, `layer`, `domain`) |
| POST   | `/admin/rules`              | create an enabled rule               |
| PUT    | `/admin/rules/{id}`         | partially update a rule              |
| DELETE | `/admin/rules/{id}`         | delete a rule (204 on success)       |
| GET    | `/admin/stats`              | overall statistics                   |
| GET    | `/admin/stats/compression`  | recent compression records (`limit`, `offset`) |
| GET    | `/admin/experiments`        | shadow experiments (`limit`, `offset`) |

`limit` defaults to 50 and `offset` to 0. Errors are returned as JSON in
the form `{"error": {"message": ..., "type": ...}}`, with a matching HTTP
status (for example 404 with type `not_found`, 400 with type
`deserialization_error`).

## Shadow testing

`cosine_similarity(a, b)` returns a value in [-1, 1], or 0.0 for empty
vectors, vectors of different length or a zero vector.
`ShadowRunner(ShadowConfig(...))` decides with `should_shadow()` whether a
request is sampled, according to `sample_rate`. `spawn_shadow_test(store,
experiment_id)` runs in a thread pool of `max_concurrency` workers and
returns a future that resolves to whether the experiment record was
updated. Call `shutdown()` when done.

## What this package does not do

- It contains no prompt compressor and no rule engine: rules are stored
  and served, but never applied to text.
- It does not forward chat requests to an upstream API. There are no
  `/v1/chat/completions` or `/v1/messages` endpoints and no streaming
  pass-through; the request models only parse, rewrite and serialise.
- There is no endpoint to reload a compressor.
- A shadow test does not call any upstream API or compute embeddings. It
  marks the experiment as `completed` with placeholder responses and no
  similarity score.
- There is no command-line program; run the admin app with an ASGI server
  of your choice.

## Running the tests

```
pip install -e ".[test]"
pytest
```