"""
Profile Resolution Logic.

Responsibilities:
- Resolve one PersonQuery to a single profile URL, or to a typed
  not-found / rejected / needs-review outcome.
- Run the strict search pass first and escalate to the relaxed pass only
  when the strict pass does not produce an accepted candidate.
- Consult the cache before searching and write resolved outcomes back.

Non-Responsibilities:
- No text matching or scoring of its own (names, organizations, scoring).
- No persistence format decisions (storage, database).

Invariant:
Search failures never abort a resolution: a failing strategy contributes
no candidates and the next strategy runs. Only invalid input raises.
"""

from enum import Enum
from typing import List, Optional, Sequence, Set, Tuple

from .cache import ResolutionCache
from .config import ResolverConfig
from .duplicates import assess_duplicate_risk
from .errors import AmbiguityError, ExternalCallError, NoCandidateError, ValidationRejection
from .google_results import SearchClient
from .logger import get_logger
from .models import Candidate, DuplicateRiskProfile, PersonQuery, ReviewBundle, ResolutionResult, Status
from .normalize import canonical_url
from .patterns import PatternLearner
from .retry import RateLimiter, is_transient_error
from .rules import Rule, RuleOutcome, default_rules, evaluate_rules
from .schema import ensure_valid
from .scoring import rank_candidates, score_candidate, sort_candidates
from .search import SearchStrategy, build_relaxed_strategies, build_strict_strategies

MAX_ALTERNATIVES = 2


class ResolverState(str, Enum):
    IDLE = "idle"
    PASS1_STRICT = "pass1_strict"
    PASS2_RELAXED = "pass2_relaxed"
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class ProfileResolver:
    def __init__(
        self,
        search_client: SearchClient,
        config: Optional[ResolverConfig] = None,
        cache: Optional[ResolutionCache] = None,
        patterns: Optional[PatternLearner] = None,
        rate_limiter: Optional[RateLimiter] = None,
        rules: Optional[Sequence[Rule]] = None,
    ):
        """
        Args:
            search_client: Search capability (GoogleSearchClient in production)
            config: Resolver configuration (default: ResolverConfig())
            cache: Resolution cache (default: in-memory with the config TTL)
            patterns: Pattern learner (default: in-memory)
            rate_limiter: Limiter applied before every search call
            rules: Accept/reject/review rules (default: default_rules)
        """
        self.config = config or ResolverConfig()
        self.profile = self.config.industry_profile
        self.search_client = search_client
        self.cache = cache if cache is not None else ResolutionCache(ttl=self.config.cache_ttl)
        self.patterns = patterns if patterns is not None else PatternLearner()
        limits = self.config.rate_limits
        self.rate_limiter = rate_limiter or RateLimiter(
            min_delay=limits.min_delay,
            per_minute=limits.per_minute,
            per_hour=limits.per_hour,
            per_day=limits.per_day,
        )
        self.rules = list(rules) if rules is not None else default_rules(self.config.thresholds)
        self.logger = get_logger()
        self.state = ResolverState.IDLE
        self.search_calls = 0

    def _enter(self, state: ResolverState, person: PersonQuery) -> None:
        self.state = state
        self.logger.debug("Resolver state", state=state.value, person=person.full_name)

    def resolve(self, person: PersonQuery) -> ResolutionResult:
        """
        Resolve a person to a profile URL.

        Raises:
            InputError: If the first or last name is missing or malformed
        """
        ensure_valid(person)
        self.state = ResolverState.IDLE
        self.search_calls = 0

        key = ResolutionCache.key_for(person)
        cached = self.cache.get(key)
        self.logger.record_cache_lookup(cached is not None)
        if cached is not None:
            self.logger.info("Cache hit", person=person.full_name, status=cached.status.value, url=cached.url)
            self.state = ResolverState.RESOLVED if cached.url else ResolverState.UNRESOLVED
            self.logger.record_resolution(cached.status.value)
            return cached

        result = self._search_and_decide(person)
        self.cache.set(key, result, search_calls=self.search_calls)
        self._learn(person, result)
        self.logger.record_resolution(result.status.value)
        self.logger.info(
            "Resolution finished",
            person=person.full_name,
            status=result.status.value,
            score=result.total_score,
            url=result.url,
            pass_number=result.pass_number,
            search_calls=self.search_calls,
        )
        return result

    def _search_and_decide(self, person: PersonQuery) -> ResolutionResult:
        risk = assess_duplicate_risk(person)
        strict = risk.strategy == "strict"
        if risk.tier != "standard":
            self.logger.info("Duplicate-risk name", person=person.full_name, tier=risk.tier, reason=risk.reason)

        self._enter(ResolverState.PASS1_STRICT, person)
        seen: Set[str] = set()
        strict_strategies = build_strict_strategies(person, self.config.max_pass1_strategies)
        found = self._collect(
            strict_strategies, self.config.pass1_results, self.config.pass1_candidate_limit, seen
        )
        scored = [score_candidate(c, person, self.profile, strict) for c in found]

        first: Optional[ResolutionResult] = None
        if scored:
            first = self._decide(scored, person, risk, self.config.thresholds.strict, pass_number=1)
            if first.status in (Status.FOUND, Status.VERIFIED):
                self._enter(ResolverState.RESOLVED, person)
                return first

        self._enter(ResolverState.PASS2_RELAXED, person)
        relaxed_strategies = build_relaxed_strategies(person, self.profile, self.config.max_pass2_strategies)
        more = self._collect(
            relaxed_strategies, self.config.pass2_results, self.config.pass2_candidate_limit, seen
        )
        if not more:
            if first is not None:
                self._enter(ResolverState.RESOLVED if first.url else ResolverState.UNRESOLVED, person)
                return first
            self._enter(ResolverState.UNRESOLVED, person)
            tried = len(strict_strategies) + len(relaxed_strategies)
            return ResolutionResult.not_found(
                f"No profile candidates after both search passes ({tried} strategies, {self.search_calls} calls)"
            )

        scored += [score_candidate(c, person, self.profile, strict) for c in more]
        result = self._decide(scored, person, risk, self.config.thresholds.relaxed, pass_number=2)
        self._enter(ResolverState.RESOLVED if result.url else ResolverState.UNRESOLVED, person)
        return result

    def _collect(
        self,
        strategies: List[SearchStrategy],
        num: int,
        limit: int,
        seen: Set[str],
    ) -> List[Candidate]:
        """Run strategies in order until ``limit`` new profile candidates are gathered."""
        candidates: List[Candidate] = []
        domain = self.config.profile_domain.lower()
        for strategy in strategies:
            if len(candidates) >= limit:
                break
            try:
                self.rate_limiter.wait()
                self.search_calls += 1
                self.logger.record_search_call()
                items = self.search_client.search(strategy.query, num)
            except ExternalCallError as e:
                self.logger.record_search_failure(e.error_type)
                self.logger.warning(
                    "Search strategy failed",
                    strategy=strategy.name,
                    error_type=e.error_type,
                    transient=is_transient_error(e),
                    error=str(e),
                )
                continue

            for item in items:
                if domain not in item.link.lower():
                    continue
                key = canonical_url(item.link)
                if key in seen:
                    continue
                seen.add(key)
                candidates.append(Candidate.from_item(item, strategy.name, strategy.pass_number))
                if len(candidates) >= limit:
                    break
            self.logger.debug(
                "Strategy results", strategy=strategy.name, items=len(items), candidates=len(candidates)
            )
        return candidates

    def select(
        self,
        scored: Sequence[Candidate],
        person: PersonQuery,
        risk: DuplicateRiskProfile,
        min_score: float,
    ) -> Tuple[Candidate, RuleOutcome, List[Candidate]]:
        """
        Apply reject rules, rank the survivors and evaluate rules on the winner.

        Returns:
            (winner, rule outcome, remaining viable candidates in rank order)

        Raises:
            NoCandidateError: If ``scored`` is empty
            ValidationRejection: If every candidate is rejected
            AmbiguityError: If the ranking needs manual review
        """
        if not scored:
            raise NoCandidateError(f"No candidates for {person.full_name}")
        judged = [(c, evaluate_rules(c, person, self.rules)) for c in sort_candidates(scored)]
        viable = [c for c, outcome in judged if not outcome.rejected]
        if not viable:
            best, outcome = judged[0]
            raise ValidationRejection(outcome.reason, url=best.url, candidate=best)

        ranked = rank_candidates(
            viable, person, risk, min_score, review_gap=self.config.thresholds.review_gap
        )
        if isinstance(ranked, ReviewBundle):
            raise AmbiguityError(ranked.reason, urls=ranked.urls, candidates=ranked.candidates)
        outcome = next(o for c, o in judged if c is ranked)
        return ranked, outcome, [c for c in viable if c is not ranked]

    def _decide(
        self,
        scored: Sequence[Candidate],
        person: PersonQuery,
        risk: DuplicateRiskProfile,
        min_score: float,
        pass_number: int,
    ) -> ResolutionResult:
        try:
            winner, outcome, others = self.select(scored, person, risk, min_score)
        except ValidationRejection as e:
            best = e.candidate
            return ResolutionResult(
                url=None,
                total_score=best.total_score,
                status=Status.REJECTED,
                breakdown=best.breakdown(),
                review_reason=e.reason,
                alternative_urls=(best.url,),
                strategy=best.strategy,
                pass_number=pass_number,
                organization_score=best.organization_score,
            )
        except AmbiguityError as e:
            best = e.candidates[0]
            return ResolutionResult(
                url=best.url,
                total_score=best.total_score,
                status=Status.NEEDS_REVIEW,
                breakdown=best.breakdown(),
                needs_review=True,
                review_reason=e.reason,
                alternative_urls=e.urls[1:],
                strategy=best.strategy,
                pass_number=pass_number,
                organization_score=best.organization_score,
            )

        alternatives = tuple(c.url for c in others[:MAX_ALTERNATIVES])
        if pass_number >= 2:
            status = Status.NEEDS_REVIEW
            reason = outcome.reason if outcome.review else "resolved by a relaxed (pass 2) search"
        elif outcome.accepted:
            status, reason = Status.VERIFIED, None
        elif outcome.review:
            status, reason = Status.NEEDS_REVIEW, outcome.reason
        else:
            status, reason = Status.FOUND, None

        return ResolutionResult(
            url=winner.url,
            total_score=winner.total_score,
            status=status,
            breakdown=winner.breakdown(),
            verified=status == Status.VERIFIED,
            needs_review=status == Status.NEEDS_REVIEW,
            review_reason=reason,
            alternative_urls=alternatives,
            strategy=winner.strategy,
            pass_number=pass_number,
            organization_score=winner.organization_score,
        )

    def _learn(self, person: PersonQuery, result: ResolutionResult) -> None:
        if result.status in (Status.FOUND, Status.VERIFIED):
            self.patterns.record_success(person, result.strategy, outcome=result.status.value)
        elif result.status in (Status.NOT_FOUND, Status.REJECTED):
            self.patterns.record_failure(person, result.strategy, outcome=result.status.value)
