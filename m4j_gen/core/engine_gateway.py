"""Gateway to a local JMeter installation.

The generator only produces JMX files. This gateway checks the configured
JMeter installation at initialization and can optionally start a
non-GUI test run of a generated file.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Union

from m4j_gen.exceptions import EngineException

logger = logging.getLogger(__name__)


class JMeterEngineGateway:
    """Access to the JMeter installation in ``jmeter_home``.

    Without a JMeter home the gateway is disabled: initialization succeeds
    but test runs cannot be started.

    Example:
        >>> gateway = JMeterEngineGateway("/opt/apache-jmeter")
        >>> gateway.run("testplan.jmx")
        0
    """

    def __init__(
        self,
        jmeter_home: Optional[str] = None,
        jmeter_properties: Optional[str] = None,
        language_tag: Optional[str] = None,
    ) -> None:
        """Initialize gateway and check the installation.

        Args:
            jmeter_home: JMeter installation directory (None/"" = disabled)
            jmeter_properties: Optional properties file passed to JMeter
            language_tag: Optional locale such as "en" or "de-DE"

        Raises:
            EngineException: Launcher or properties file not found
        """
        self.jmeter_home = Path(jmeter_home) if jmeter_home else None
        self.jmeter_properties = Path(jmeter_properties) if jmeter_properties else None
        self.language_tag = language_tag or None

        if self.jmeter_home is not None and not self.executable.is_file():
            raise EngineException(
                f"JMeter launcher not found: {self.executable} (check jmeter_home)"
            )
        if self.jmeter_properties is not None and not self.jmeter_properties.is_file():
            raise EngineException(f"JMeter properties file not found: {self.jmeter_properties}")

    @property
    def enabled(self) -> bool:
        """Whether a JMeter home is configured."""
        return self.jmeter_home is not None

    @property
    def executable(self) -> Path:
        """Path of the JMeter launcher script.

        Raises:
            EngineException: No JMeter home configured
        """
        if self.jmeter_home is None:
            raise EngineException("No JMeter home configured")
        launcher = "jmeter.bat" if os.name == "nt" else "jmeter"
        return self.jmeter_home / "bin" / launcher

    def build_command(self, test_plan_path: Union[str, Path], log_path: Optional[str] = None) -> list[str]:
        """Build the command line of a non-GUI test run."""
        command = [str(self.executable), "-n", "-t", str(test_plan_path)]

        if log_path:
            command += ["-l", log_path]
        if self.jmeter_properties is not None:
            command += ["-p", str(self.jmeter_properties)]
        if self.language_tag:
            language, _, region = self.language_tag.replace("_", "-").partition("-")
            command.append(f"-Duser.language={language}")
            if region:
                command.append(f"-Duser.region={region}")
        return command

    def run(self, test_plan_path: Union[str, Path], log_path: Optional[str] = None) -> int:
        """Run a test plan in non-GUI mode and wait for JMeter to finish.

        Args:
            test_plan_path: JMX file to run
            log_path: Optional results file (-l)

        Returns:
            Exit code of the JMeter process

        Raises:
            EngineException: Gateway disabled or JMeter cannot be started
        """
        if not self.enabled:
            raise EngineException("Cannot run test plan: no JMeter home configured")

        command = self.build_command(test_plan_path, log_path)
        logger.info("Starting JMeter: %s", " ".join(command))

        try:
            completed = subprocess.run(command, cwd=str(self.jmeter_home), check=False)
        except OSError as e:
            raise EngineException(f"Could not start JMeter: {e}") from e

        if completed.returncode != 0:
            logger.warning("JMeter finished with exit code %d", completed.returncode)
        return completed.returncode
