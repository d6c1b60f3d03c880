import pytest

from ofproviders.openfeature import ErrorCode, ProviderState, Reason, flatten_context
from ofproviders.unleash import (
    DISABLED_VARIANT_NAME,
    UnleashConfig,
    UnleashContext,
    UnleashProvider,
    UnleashVariant,
    to_unleash_context,
)

TOGGLES = {
    "variant-flag": {"enabled": True, "variant": "v1", "payload": "v1"},
    "users-flag": {"enabled": True, "users": {"111"}},
}


class FakeUnleash:
    def __init__(self, fail=False):
        self.fail = fail
        self.initialized = False
        self.closed = False

    def initialize(self):
        if self.fail:
            raise ConnectionError("unreachable")
        self.initialized = True

    def close(self):
        self.closed = True

    def is_enabled(self, name, context, fallback):
        toggle = TOGGLES.get(name)
        if toggle is None:
            return fallback
        if "users" in toggle:
            return context.user_id in toggle["users"]
        return toggle["enabled"]

    def get_variant(self, name, context):
        toggle = TOGGLES.get(name)
        if toggle is None or "variant" not in toggle:
            return UnleashVariant(DISABLED_VARIANT_NAME, False)
        return UnleashVariant(toggle["variant"], True, toggle["payload"])


@pytest.fixture
def client():
    return FakeUnleash()


@pytest.fixture
def provider(client):
    p = UnleashProvider(UnleashConfig(client=client))
    p.init({})
    yield p
    p.shutdown()


def test_boolean_evaluation(provider):
    resolution = provider.boolean_evaluation("variant-flag", False, None)
    assert resolution.flag_metadata["enabled"] is True
    assert resolution.value is True


def test_boolean_evaluation_empty_ctx_unknown_flag(provider):
    assert provider.boolean_evaluation("non-existing-flag", False, None).value is False


def test_string_evaluation(provider):
    resolution = provider.string_evaluation("variant-flag", "", None)
    assert resolution.flag_metadata["enabled"] is True
    assert resolution.variant == "v1"
    assert resolution.value == "v1"
    flat = flatten_context("", {})
    assert provider.string_evaluation("variant-flag", "", flat).value != ""


def test_boolean_evaluation_by_user(provider):
    enabled = provider.boolean_evaluation("users-flag", False, {"UserId": "111"})
    assert enabled.flag_metadata["enabled"] is True
    disabled = provider.boolean_evaluation("users-flag", False, {"UserId": "2"})
    assert disabled.flag_metadata["enabled"] is False
    assert provider.boolean_evaluation("users-flag", False, flatten_context("", {"UserId": "111"})).value is True


def test_object_evaluation_disabled_variant_returns_default(provider):
    resolution = provider.object_evaluation("missing", {"a": 1}, None)
    assert resolution.value == {"a": 1}
    assert resolution.variant == ""
    assert resolution.flag_metadata == {"enabled": False}
    assert resolution.error is None


def test_float_and_int_fall_back_to_default(provider):
    assert provider.float_evaluation("missing", 2.5, None).value == 2.5
    assert provider.int_evaluation("missing", 9, None).value == 9


def test_float_and_int_reject_string_payload(provider):
    with pytest.raises(TypeError):
        provider.float_evaluation("variant-flag", 2.5, None)
    with pytest.raises(TypeError):
        provider.int_evaluation("variant-flag", 9, None)


def test_not_ready_provider(client):
    p = UnleashProvider(UnleashConfig(client=client))
    assert p.status() is ProviderState.NOT_READY
    resolution = p.boolean_evaluation("variant-flag", True, None)
    assert resolution.value is True
    assert resolution.reason == Reason.ERROR
    assert resolution.error.code is ErrorCode.PROVIDER_NOT_READY
    assert resolution.error.message == "Provider not ready"


def test_failed_init_puts_provider_in_error_state():
    p = UnleashProvider(UnleashConfig(client=FakeUnleash(fail=True)))
    with pytest.raises(ConnectionError):
        p.init({})
    assert p.status() is ProviderState.ERROR
    resolution = p.object_evaluation("variant-flag", "d", None)
    assert resolution.value == "d"
    assert resolution.error.code is ErrorCode.GENERAL
    assert resolution.error.message == "general error"


def test_shutdown_closes_client(client):
    p = UnleashProvider(UnleashConfig(client=client))
    p.init({})
    assert p.status() is ProviderState.READY
    p.shutdown()
    assert client.closed is True
    assert p.status() is ProviderState.NOT_READY


def test_invalid_context(provider):
    boolean = provider.boolean_evaluation("variant-flag", False, {"tags": ["a"]})
    assert boolean.error.code is ErrorCode.INVALID_CONTEXT
    assert boolean.error.message == "key `tags` can not be converted to string"
    obj = provider.object_evaluation("variant-flag", None, {"tags": ["a"]})
    assert obj.error.code is ErrorCode.GENERAL
    assert obj.value is None


def test_to_unleash_context_maps_fields():
    ctx = to_unleash_context(
        {"UserId": "111", "AppName": "my-application", "SessionId": "s", "admin": True, "targetingKey": "k"}
    )
    assert ctx.user_id == "111"
    assert ctx.app_name == "my-application"
    assert ctx.session_id == "s"
    assert ctx.properties == {"admin": "true", "targetingKey": "k"}
    assert to_unleash_context(None) == UnleashContext()


def test_metadata_and_hooks(provider):
    assert provider.metadata().name == "Unleash"
    assert provider.hooks() == []