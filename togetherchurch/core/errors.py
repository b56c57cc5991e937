from __future__ import annotations


class ChurchError(Exception):
    """Base error for togetherchurch."""


class FeatureNotEnabledError(ChurchError):
    """The church's plan and overrides do not enable a required feature."""

    def __init__(self, feature_key: str) -> None:
        super().__init__(f'Feature "{feature_key}" is not available on your current plan.')
        self.feature_key = feature_key


class UnknownFeatureError(ChurchError):
    """Feature key is not present in the feature catalog."""

    def __init__(self, feature_key: str) -> None:
        super().__init__(f"Unknown feature key: {feature_key}")
        self.feature_key = feature_key


class PlanNotFoundError(ChurchError):
    """Plan id is missing or the plan is inactive."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Plan not found or inactive: {plan_id}")
        self.plan_id = plan_id


class ChurchNotFoundError(ChurchError):
    """Church id does not exist."""


class RedirectRequired(ChurchError):
    """Terminate the current request with an HTTP redirect."""

    def __init__(self, location: str, status_code: int = 302) -> None:
        super().__init__(location)
        self.location = location
        self.status_code = status_code
