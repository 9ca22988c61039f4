# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

import importlib.metadata as metadata

# constants
PACKAGE_NAME = "sui_sdk"


class Metadata:
    @staticmethod
    def get_version() -> str:
        return metadata.version(PACKAGE_NAME)

    @staticmethod
    def get_version_string() -> str:
        try:
            version = Metadata.get_version()
        except metadata.PackageNotFoundError:
            version = "unknown"
        return f"sui-python-sdk/{version}"
