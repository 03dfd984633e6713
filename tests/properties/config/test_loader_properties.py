from hypothesis import given, strategies as st

from mcp_autostarter.config import deep_merge, set_nested_key
from mcp_autostarter.config._loader import _parse_env_value  # pyright: ignore[reportPrivateUsage]

keys = st.text(alphabet="abcdefghij_", min_size=1, max_size=6)
scalars = st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=10))
config_dicts = st.recursive(
    st.dictionaries(keys, scalars, max_size=4),
    lambda children: st.dictionaries(
        keys, st.one_of(scalars, children, st.lists(scalars, max_size=3)), max_size=4
    ),
    max_leaves=12,
)


@given(base=config_dicts)
def test_merge_with_empty_is_identity(base: dict[str, object]) -> None:
    assert deep_merge(base, {}) == base
    assert deep_merge({}, base) == base


@given(base=config_dicts, override=config_dicts)
def test_override_keys_always_win(
    base: dict[str, object], override: dict[str, object]
) -> None:
    merged = deep_merge(base, override)

    for key, value in override.items():
        if not (isinstance(value, dict) and isinstance(base.get(key), dict)):
            assert merged[key] == value


@given(base=config_dicts, override=config_dicts)
def test_no_keys_are_lost(base: dict[str, object], override: dict[str, object]) -> None:
    merged = deep_merge(base, override)

    assert set(merged) == set(base) | set(override)


@given(value=st.integers())
def test_integers_round_trip(value: int) -> None:
    parsed = _parse_env_value(str(value))

    if value in (0, 1):
        assert parsed is bool(value)
    else:
        assert parsed == value


@given(value=st.text(alphabet="abcdefghijklmnopqrstuvwxyz-/", min_size=2))
def test_plain_words_stay_strings(value: str) -> None:
    if value.lower() not in ("true", "false"):
        assert _parse_env_value(value) == value


@given(path=st.lists(keys, min_size=1, max_size=5), value=scalars)
def test_set_nested_key_is_readable(path: list[str], value: object) -> None:
    d: dict[str, object] = {}

    set_nested_key(d, ".".join(path), value)

    current: object = d
    for part in path:
        assert isinstance(current, dict)
        current = current[part]  # pyright: ignore[reportUnknownVariableType]
    assert current == value
