from __future__ import annotations

import os
import pathlib

HERE = pathlib.Path(__file__).absolute().parent


def package_root() -> pathlib.Path:
    """The directory shipped as the Lambda code for the custom resource handlers."""
    if "IRSA_PACKAGE_ROOT" in os.environ:
        return pathlib.Path(os.environ["IRSA_PACKAGE_ROOT"])

    return HERE
