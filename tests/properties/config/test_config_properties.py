"""Property-based tests for interpolation and environment inheritance."""

import pytest
from hypothesis import assume, given, strategies as st

from supastorj.config import EnvironmentConfig
from supastorj.config._inheritance import resolve_environment
from supastorj.config._interpolate import interpolate, interpolate_string
from supastorj.exceptions import ConfigCycleError, ConfigMissingParentError

# =============================================================================
# Strategies
# =============================================================================

variable_name = st.from_regex(r"[A-Z][A-Z0-9_]{0,10}", fullmatch=True)

# Values that cannot introduce new tokens
plain_value = st.text(
    alphabet=st.characters(blacklist_characters="${}"), min_size=1, max_size=20
)

variables = st.dictionaries(variable_name, plain_value, max_size=5)

template = st.lists(
    st.one_of(plain_value, variable_name.map(lambda name: f"${{{name}}}")),
    max_size=6,
).map("".join)

config_value = st.recursive(
    st.one_of(template, st.integers(), st.booleans(), st.none()),
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(st.text(max_size=5), children, max_size=3),
    ),
    max_leaves=10,
)

environment_names = st.sampled_from(["development", "staging", "production", "qa"])


# =============================================================================
# Interpolation Properties
# =============================================================================


@given(value=plain_value, env=variables)
def test_text_without_tokens_is_unchanged(value: str, env: dict[str, str]) -> None:
    """Property: strings without tokens pass through untouched."""
    assert interpolate_string(value, env) == value


@given(value=config_value, env=variables)
def test_interpolation_is_idempotent(value: object, env: dict[str, str]) -> None:
    """Property: interpolating twice gives the same result as once."""
    once = interpolate(value, env)

    assert interpolate(once, env) == once


@given(name=variable_name, value=plain_value, env=variables)
def test_defined_variables_are_replaced(
    name: str, value: str, env: dict[str, str]
) -> None:
    """Property: a defined variable never survives as a token."""
    result = interpolate_string(f"<${{{name}}}>", {**env, name: value})

    assert result == f"<{value}>"


@given(name=variable_name, env=variables)
def test_unknown_variables_are_kept(name: str, env: dict[str, str]) -> None:
    """Property: an unknown variable is left in place."""
    assume(name not in env)

    assert interpolate_string(f"${{{name}}}", env) == f"${{{name}}}"


# =============================================================================
# Inheritance Properties
# =============================================================================


@given(
    parents=st.dictionaries(
        environment_names,
        st.none() | environment_names | st.just("missing"),
        min_size=1,
    ),
    data=st.data(),
)
def test_resolution_terminates(
    parents: dict[str, str | None], data: st.DataObject
) -> None:
    """Property: any extends graph resolves or fails with a clear error."""
    environments = {
        name: EnvironmentConfig(name=name, extends=parent, variables={name: "1"})
        for name, parent in parents.items()
    }
    start = data.draw(st.sampled_from(sorted(environments)))

    try:
        resolved = resolve_environment(start, environments)
    except ConfigCycleError as e:
        assert e.cycle[0] == e.cycle[-1]
        assert len(set(e.cycle)) == len(e.cycle) - 1
    except ConfigMissingParentError as e:
        assert e.parent not in environments
    else:
        assert resolved.name == start
        assert resolved.variables[start] == "1"


@given(chain=st.lists(environment_names, min_size=2, max_size=4, unique=True))
def test_child_variables_win(chain: list[str]) -> None:
    """Property: along a chain the most derived value of a variable wins."""
    environments = {
        name: EnvironmentConfig(
            name=name,
            extends=chain[index - 1] if index else None,
            variables={"LEVEL": name, f"ONLY_{index}": name},
        )
        for index, name in enumerate(chain)
    }

    resolved = resolve_environment(chain[-1], environments)

    assert resolved.variables["LEVEL"] == chain[-1]
    for index, name in enumerate(chain):
        assert resolved.variables[f"ONLY_{index}"] == name


def test_self_extension_is_a_cycle() -> None:
    environments = {"qa": EnvironmentConfig(name="qa", extends="qa")}

    with pytest.raises(ConfigCycleError) as exc_info:
        _ = resolve_environment("qa", environments)

    assert exc_info.value.cycle == ("qa", "qa")
