"""
RepositoryQualifier - Decides whether a repository goes into the output.

Rule: TypeScript AND React AND Jest AND a React test library, and not
course/boilerplate material. The test-library term can be switched off.
"""

from typing import Optional

from models import QualificationDecision, TechnologySignals
from github_miner.noise_filter import NoiseVerdict


class RepositoryQualifier:
    """
    Turns technology signals and a noise verdict into a final decision.
    """

    def __init__(self, require_frontend_tests: bool = True, exclude_noise: bool = True):
        """
        Initialize qualifier.

        Args:
            require_frontend_tests: Require a React test library on top of Jest
            exclude_noise: Reject course/boilerplate/template repositories
        """
        self.require_frontend_tests = require_frontend_tests
        self.exclude_noise = exclude_noise

    def decide(
        self,
        signals: TechnologySignals,
        noise: Optional[NoiseVerdict] = None,
    ) -> QualificationDecision:
        """
        Apply the qualification rule.

        Args:
            signals: Detected technology signals
            noise: Noise verdict, if the noise check ran

        Returns:
            QualificationDecision with the first failing reason
        """
        is_noise = bool(noise)

        if self.exclude_noise and is_noise:
            return QualificationDecision(
                qualified=False,
                reason=f"Course/boilerplate/template: {noise.describe()}",
                is_noise=True,
            )

        if not (signals.has_language and signals.has_framework):
            return QualificationDecision(
                qualified=False,
                reason=(
                    f"Missing TS or React "
                    f"(TS:{signals.has_language} React:{signals.has_framework})"
                ),
                is_noise=is_noise,
            )

        if not signals.has_test_runner:
            return QualificationDecision(
                qualified=False, reason="No Jest detected", is_noise=is_noise
            )

        if self.require_frontend_tests and not signals.has_frontend_test_library:
            return QualificationDecision(
                qualified=False,
                reason="No React test library (Testing Library/Enzyme) detected",
                is_noise=is_noise,
            )

        return QualificationDecision(qualified=True, is_noise=is_noise)
