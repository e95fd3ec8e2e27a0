from __future__ import annotations

import json
import secrets
import typing

import irsa

MAX_TRUNCATED_ROLE_NAME_LEN = irsa.MAX_ROLE_NAME_LEN - irsa.ROLE_NAME_SUFFIX_LEN - 1


def generate_random_suffix(length: int = irsa.ROLE_NAME_SUFFIX_LEN) -> str:
    return "".join(secrets.choice(irsa.ROLE_NAME_SUFFIX_CHARS) for _ in range(length))


def generate_role_name(logical_resource_id: str) -> str:
    """
    Build a physical role name from a CloudFormation logical id: the id cut
    down to leave room for a hyphen and a random uppercase alphanumeric suffix.
    The result never exceeds `irsa.MAX_ROLE_NAME_LEN` characters.
    """
    return f"{logical_resource_id[:MAX_TRUNCATED_ROLE_NAME_LEN]}-{generate_random_suffix()}"


def json_document(doc: str | dict[str, typing.Any]) -> str:
    if isinstance(doc, str):
        return doc

    return json.dumps(doc)


def unique(items: typing.Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))
