import typing

import pulumi

StrInput = typing.Union[str, pulumi.Output[str]]
