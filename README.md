# ofproviders

Feature-flag providers that resolve flags against several backends and
report every result through one shared evaluation model.

Providers included:

- `ofproviders.gofeatureflag.provider.GoFeatureFlagProvider` evaluates
  flags by posting to a GO Feature Flag relay proxy over HTTP. Cacheable
  answers are kept in an LRU cache (`FlagCache`) with an optional expiry,
  and a background `DataCollector` sends usage events for answers served
  from that cache.
- `ofproviders.harness.HarnessProvider` evaluates flags through a Harness
  client that you supply.
- `ofproviders.launchdarkly.provider.LaunchDarklyProvider` maps evaluation
  contexts to LaunchDarkly single or multi contexts (`LDContext`,
  `LDMultiContext`) and translates LaunchDarkly reasons and errors.
- `ofproviders.unleash.UnleashProvider` evaluates toggles and variants
  through an Unleash client that you supply.

Every evaluation method returns a `ResolutionDetail` from
`ofproviders.openfeature`: the resolved `value` together with a `reason`,
a `variant`, `flag_metadata` and, on failure, an `error` holding a
`ResolutionError` with an `ErrorCode`. A failed evaluation hands back the
default value you passed in.

Evaluation contexts are plain mappings. `flatten_context(targeting_key,
attributes)` builds one, putting the targeting key under `"targetingKey"`.

## Installation

```
pip install ofproviders
```

The package has no runtime dependencies.

## GO Feature Flag relay proxy

```python
from ofproviders.gofeatureflag.options import ProviderOptions
from ofproviders.gofeatureflag.provider import GoFeatureFlagProvider
from ofproviders.openfeature import flatten_context

with GoFeatureFlagProvider(
    ProviderOptions(endpoint="http://localhost:1031", api_key="placeholder")
) as provider:
    ctx = flatten_context("user-1", {"email": "john@example.com", "anonymous": False})
    detail = provider.boolean_evaluation("new_checkout", False, ctx)
    print(detail.value, detail.reason, detail.variant)
```

Requests go to `<endpoint>/v1/feature/<flag>/eval`; with an `api_key` they
carry an `Authorization: Bearer ...` header. The context must hold a string
`targetingKey`, otherwise the evaluation fails with
`ErrorCode.TARGETING_KEY_MISSING`.

`ProviderOptions` (durations in seconds):

| option | default |
| --- | --- |
| `endpoint` | required; an empty endpoint raises `ValueError` |
| `http_client` | `UrllibHTTPClient` with a 10 second timeout |
| `api_key` | none |
| `disable_cache` | `False` |
| `flag_cache_size` | 10000 |
| `flag_cache_ttl` | 60; `-1` keeps entries forever |
| `data_flush_interval` | 60 |
| `data_max_event_in_memory` | 500 |

With `disable_cache=True` every evaluation goes to the relay proxy and no
data collector is started. Otherwise the collector posts batches to
`<endpoint>/v1/data/collector` when the buffer fills, every flush interval,
and on `shutdown()`.

Any object with a `do(request)` method taking an `HTTPRequest` and
returning an `HTTPResponse` (both in `ofproviders.gofeatureflag.transport`)
can serve as `http_client`; it should raise `OSError` when the server
cannot be reached.

## Harness, LaunchDarkly and Unleash

These providers wrap a client object you pass in:

- `HarnessConfig(sdk_key=..., client_factory=...)`: the factory is called
  with the key in `HarnessProvider.init()` and must return an object with
  `close()` and `bool_variation`, `number_variation`, `int_variation`,
  `string_variation` and `json_variation`, each taking
  `(flag, target, default)` where `target` is a `HarnessTarget`.
- `LaunchDarklyProvider(client, logger=None, kind_attr="kind")`: the client
  must offer `bool_variation_detail`, `string_variation_detail`,
  `float_variation_detail`, `int_variation_detail` and
  `json_variation_detail`, each taking `(key, context, default)` and
  returning an `EvaluationDetail`. Each evaluation method accepts an
  optional `cancel` `threading.Event`; if it is set the evaluation fails
  with a general "context canceled" error. The logger defaults to
  `NoOpLogger` from `ofproviders.launchdarkly.logger`.
- `UnleashConfig(client=...)`: the client must offer `initialize()`,
  `close()`, `is_enabled(name, context, fallback)` and
  `get_variant(name, context)` returning an `UnleashVariant`. The float and
  integer evaluations raise `TypeError` when the variant payload is not a
  number of that kind.

### Provider state

`HarnessProvider` and `UnleashProvider` start in `ProviderState.NOT_READY`.
`init(...)` moves them to `READY`; until then every evaluation returns the
default value with `ErrorCode.PROVIDER_NOT_READY`. If initialisation raises,
the state becomes `ERROR`, the exception propagates, and evaluations report
a general error. `shutdown()` closes the client and returns to `NOT_READY`.

## What this package does not do

- It ships no Harness, LaunchDarkly or Unleash client; you bring your own
  object with the methods listed above.
- It does not evaluate GO Feature Flag flag files locally; the GO Feature
  Flag provider always asks a relay proxy.
- It has no global provider registry or client API on top of the providers,
  and no command-line tool.

## Running the tests

```
pip install -e .[test]
pytest
```