"""
onboarding.models — Модели данных домена онбординга.

Реэкспорт основных классов для удобства:
    from onboarding.models import IndividualSignup, ProvisioningResult
"""

from onboarding.models.enums import (  # noqa: F401
    AccountKind,
    AccountStatus,
    ProfileField,
    RoleType,
    VerificationStatus,
)
from onboarding.models.identity import (  # noqa: F401
    AccountRecord,
    IdentityDraft,
    IdentityIds,
    MembershipRecord,
    OrganizationProfileRecord,
    OrganizationRecord,
    ProfileCompletionRecord,
    UserProfileRecord,
    UserRecord,
)
from onboarding.models.signup import IndividualSignup, OrganizationSignup  # noqa: F401
from onboarding.models.provisioning import (  # noqa: F401
    PlanRef,
    ProvisionedIdentity,
    ProvisioningFailure,
    ProvisioningResult,
    Subscription,
)
