# azdo_scanner/policy.py
"""
Branch protection grading.

- Pure functions over the JSON returned by `az repos policy list`; no az calls here.
- The baseline: at least one approver, the last pusher cannot approve, and votes reset on new pushes.
- Anything missing or malformed counts as "not satisfied"; evaluate_policies never raises.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from config import REVIEWER_POLICY_TYPE
from models import PolicyEvaluation, PolicyFinding
from utils import is_truthy

NO_POLICY_MESSAGE = "No branch policy"
NO_REVIEWER_POLICY_MESSAGE = "No branch policy (policy not enabled or missing required reviewers policy)"

MIN_REVIEWERS_PASS = "Has 1 or more reviewer required"
MIN_REVIEWERS_FAIL = "Minimum number of reviewers is less than 1"
LAST_PUSHER_PASS = "Prohibits last pusher to approve changes"
LAST_PUSHER_FAIL = "Prohibit most recent pusher (blockLastPusherVote) must be true"
VOTE_RESET_PASS = "Votes reset on changes"
VOTE_RESET_FAIL = ("At least one of requireVoteOnLastIteration, requireVoteOnEachIteration, "
                   "or resetRejectionsOnSourcePush must be true")


def policy_type_name(policy: Any) -> str:
    """
    Return the policy type display name. az emits either a plain string or an object with displayName.
    """
    if not isinstance(policy, dict):
        return ""
    policy_type = policy.get("type")
    if isinstance(policy_type, str):
        return policy_type
    if isinstance(policy_type, dict):
        name = policy_type.get("displayName")
        return name if isinstance(name, str) else ""
    return ""


def is_reviewer_policy(policy: Any) -> bool:
    return policy_type_name(policy) == REVIEWER_POLICY_TYPE


@dataclass(frozen=True)
class ReviewerPolicySettings:
    """Normalized view of a "Minimum number of reviewers" policy."""
    enabled: bool
    minimum_approver_count: Optional[float]
    block_last_pusher_vote: bool
    require_vote_on_last_iteration: bool
    require_vote_on_each_iteration: bool
    reset_rejections_on_source_push: bool

    @classmethod
    def from_policy(cls, policy: dict) -> "ReviewerPolicySettings":
        settings = policy.get("settings")
        if not isinstance(settings, dict):
            settings = {}
        count = settings.get("minimumApproverCount")
        # bool is an int subclass; a JSON true is not a count
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            count = None
        return cls(
            enabled=policy.get("isEnabled") is True,
            minimum_approver_count=count,
            block_last_pusher_vote=is_truthy(settings.get("blockLastPusherVote")),
            require_vote_on_last_iteration=is_truthy(settings.get("requireVoteOnLastIteration")),
            require_vote_on_each_iteration=is_truthy(settings.get("requireVoteOnEachIteration")),
            reset_rejections_on_source_push=is_truthy(settings.get("resetRejectionsOnSourcePush")),
        )

    @property
    def has_min_reviewers(self) -> bool:
        return self.minimum_approver_count is not None and self.minimum_approver_count >= 1

    @property
    def resets_votes(self) -> bool:
        return (self.require_vote_on_last_iteration
                or self.require_vote_on_each_iteration
                or self.reset_rejections_on_source_push)


def find_reviewer_policy(policies: Iterable[Any]) -> Optional[dict]:
    """
    Return the reviewer policy to grade: the first enabled one, else the first one found.
    """
    first = None
    for policy in policies:
        if not is_reviewer_policy(policy):
            continue
        if policy.get("isEnabled") is True:
            return policy
        if first is None:
            first = policy
    return first


def _check(passed: bool, pass_message: str, fail_message: str) -> PolicyFinding:
    return PolicyFinding(passed=passed, message=pass_message if passed else fail_message)


def evaluate_policies(policies: Any) -> PolicyEvaluation:
    """
    Grade the branch policies of one branch.

    Returns three findings (reviewer count, last pusher, vote reset) when an enabled
    reviewer policy exists; otherwise a single failing catch-all finding.
    """
    if not isinstance(policies, list):
        policies = []
    policy = find_reviewer_policy(policies)
    if policy is None:
        return PolicyEvaluation(
            findings=(PolicyFinding(passed=False, message=NO_REVIEWER_POLICY_MESSAGE),),
            overall_found=False,
        )

    settings = ReviewerPolicySettings.from_policy(policy)
    if not settings.enabled:
        return PolicyEvaluation(
            findings=(PolicyFinding(passed=False, message=NO_REVIEWER_POLICY_MESSAGE),),
            overall_found=True,
        )

    findings: List[PolicyFinding] = [
        _check(settings.has_min_reviewers, MIN_REVIEWERS_PASS, MIN_REVIEWERS_FAIL),
        _check(settings.block_last_pusher_vote, LAST_PUSHER_PASS, LAST_PUSHER_FAIL),
        _check(settings.resets_votes, VOTE_RESET_PASS, VOTE_RESET_FAIL),
    ]
    return PolicyEvaluation(findings=tuple(findings), overall_found=True)


def no_policy_findings():
    return (PolicyFinding(passed=False, message=NO_POLICY_MESSAGE),)
