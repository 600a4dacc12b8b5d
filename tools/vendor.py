"""
Vendor Dependencies
-------------------
Installs the vendor tools declared under `dependencies` in the config.
Each install command runs inside ./vendor.
"""

from pathlib import Path
from typing import Iterable, List
import logging

from commands.registry import VendorDependency
from tools.executor import ShellExecutor


def install_command(dependency: VendorDependency) -> str:
    """The shell script that installs one dependency."""
    words = " ".join(dependency.install).split()
    return "pushd vendor && " + " ".join(words) + " && popd"


def install_vendor_dependencies(dependencies: Iterable[VendorDependency],
                                executor: ShellExecutor) -> List[str]:
    """Run every install command once, in order. Returns their outputs."""
    logger = logging.getLogger("bashbot.tools.vendor")
    logger.debug("installing vendor dependencies")

    Path("vendor").mkdir(exist_ok=True)
    outputs = []
    for dependency in dependencies:
        logger.info(dependency.name)
        script = install_command(dependency)
        logger.debug(script)
        output = executor.run_shell(script)
        logger.info(output)
        outputs.append(output)
    return outputs
