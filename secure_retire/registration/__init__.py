"""Multi-step registration."""

from secure_retire.registration.wizard import (
    COLLECTIONS,
    STEP_NAMES,
    RegistrationDraft,
    RegistrationOutcome,
    RegistrationWizard,
    WizardStepError,
)

__all__ = [
    "COLLECTIONS",
    "STEP_NAMES",
    "RegistrationDraft",
    "RegistrationOutcome",
    "RegistrationWizard",
    "WizardStepError",
]
