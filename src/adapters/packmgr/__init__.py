from adapters.packmgr.client import PackageManagerClient, command_params, package_path
from adapters.packmgr.listing import decode_package, parse_package_listing

__all__ = [
    "PackageManagerClient",
    "command_params",
    "decode_package",
    "package_path",
    "parse_package_listing",
]
