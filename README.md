# rustadvisor

rustadvisor is a small HTTP service that answers questions about Rust backend
tooling. For each chat message it:

1. decides which tools to use, either through a fast path for greetings and
   small talk (which may also produce a canned reply) or through a planner
   model served by Ollama;
2. filters, rewrites and de-duplicates the tool queries with a fixed policy
   (`rustadvisor.policy`);
3. runs the tools: a curated local knowledge file, the crates.io search API
   (rate limited, with results re-ranked locally) and the GitHub repository
   search, sorted by stars;
4. hands the compacted results and the recent conversation to a synthesizer
   model, which writes the answer. If every tool failed, a fixed apology is
   returned instead.

Conversation history is kept per session in Redis; each write refreshes the
session's expiry.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Running

```
rustadvisor
```

The command takes no options besides `--help`. It loads the configuration,
reads the knowledge file from the fixed path `/app/data/rust_tools.json`,
connects to Redis and serves the application with uvicorn.

Settings are read from the environment. When no mapping is passed to
`Config.from_env`, a `.env` file found from the working directory upwards is
loaded first. Variable names are matched without regard to case:

| Variable | Default |
| --- | --- |
| `HOST` | `0.0.0.0` |
| `PORT` | `8080` |
| `REDIS_URL` | `redis://redis:6379/` |
| `SESSION_TTL` (or `SESSION_TTL_SECS`), seconds | `86400` |
| `OLLAMA_URL` (or `OLLAMA_BASE_URL`) | `http://ollama:11434` |
| `OLLAMA_PLANNER_MODEL` | `qwen3:8b` |
| `OLLAMA_SYNTHESIZER_MODEL` | `qwen3:8b` |
| `OLLAMA_KEEP_ALIVE` | `10m` |
| `OLLAMA_PLANNER_THINKING` | `false` |
| `OLLAMA_SYNTHESIZER_THINKING` | `true` |
| `CRATES_API_BASE_URL` | the crates.io API v1 endpoint |
| `CRATES_API_USER_AGENT` | a development user agent |
| `CRATES_API_RATE_LIMIT_MS` | `1000` |
| `GITHUB_TOKEN` | unset (requests are sent without a token) |

Booleans must be exactly `true` or `false`; numbers must be unsigned
integers, and `PORT` at most 65535. An invalid value, or a variable given
together with its alias, raises `rustadvisor.errors.ConfigError`.

The knowledge file is a JSON list of items, each with `id`, `title`,
`category`, `tags`, `summary`, `use_cases`, `pros`, `cons`, `related`,
`source` and `collected_at`.

## HTTP endpoints

| Method | Path | Purpose |
| --- | --- | --- |
| GET | `/health` | `{"status": "OK"}` |
| POST | `/sessions` | create a session, returns `session_id` |
| GET | `/history/{session_id}` | the session's messages (404 if unknown, 400 if not a UUID) |
| POST | `/reset/{session_id}` | clear the session's messages (404 if unknown, 400 if not a UUID) |
| POST | `/chat` | `{"session_id", "message"}` gives `{"answer", "used_tools"}` |
| POST | `/debug/llm` | `{"prompt"}` sent straight to the synthesizer model |
| POST | `/debug/plan` | `{"message"}` gives the raw planner output |
| POST | `/debug/local-search` | `{"query"}` against the local knowledge |
| POST | `/debug/github-search` | `{"query"}` against GitHub |
| POST | `/debug/crates-search` | `{"query"}` against crates.io |
| POST | `/debug/execute` | `{"message"}` gives the filtered plan and tool results |

Searches return at most five results. Other failures answer with status 500.

## Using it as a library

- `rustadvisor.app.build_state(config, knowledge_path)` wires the services
  together from a `rustadvisor.config.Config` and returns an `AppState`;
  `rustadvisor.app.create_app(state)` returns the FastAPI application, which
  closes the state's clients when it shuts down.
- `rustadvisor.policy` offers `fast_path_plan`, `fast_path_response` and
  `apply_tool_policy` as plain functions.
- `rustadvisor.crates` exposes its ranking helpers (`normalized_tokens`,
  `detect_role_hints`, `build_candidate_queries`, `crate_score`,
  `rerank_crates`), and `rustadvisor.local_data` exposes `normalize_query`
  and `score_item`.
- `LlmService`, `GitHubTool` and `CratesTool` accept an `httpx.AsyncClient`
  through the `http_client` keyword and can be used as async context
  managers.
- Errors derive from `rustadvisor.errors.BackendError`.

## What it does not do

The service has no authentication of its own, does not stream answers, and
ships no knowledge file: one must be provided at the path above. The GitHub
search address is fixed and cannot be configured. There is no command-line
client; the service is used over HTTP.