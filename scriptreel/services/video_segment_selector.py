"""Video Segment Selector - maps narration time onto stock footage clips."""

from typing import Any, Optional

from scriptreel.core.config import Settings
from scriptreel.core.errors import InsufficientFootage, InvalidInput
from scriptreel.models.schemas import CoverageReport, FootageClip, ScriptSection, SectionBudget, VideoSegmentPlan
from scriptreel.services.interfaces import FootageCatalog
from scriptreel.utils.text_utils import estimate_spoken_duration, extract_keywords, parse_duration

# Float slack when comparing accumulated seconds against budgets
EPSILON = 1e-6


def candidate_order(clip: FootageClip) -> tuple[float, str]:
    """Sort key: longest clips first, ties broken by clip id."""
    return (-clip.duration_seconds, clip.id)


class _Slice:
    """Unassigned footage: a clip plus the offset where its unused part begins."""

    __slots__ = ("clip", "offset")

    def __init__(self, clip: FootageClip, offset: float = 0.0):
        self.clip = clip
        self.offset = offset

    @property
    def remaining(self) -> float:
        return self.clip.duration_seconds - self.offset


class VideoSegmentSelector:
    """Picks and orders footage so its duration covers the narration."""

    def __init__(self, settings: Settings, logger: Any, catalog: FootageCatalog):
        """
        Initialize the selector.

        Args:
            settings: Application settings (coverage policy, search limits)
            logger: Logger instance
            catalog: Footage catalog to query
        """
        self.settings = settings
        self.logger = logger
        self.catalog = catalog

    def compute_budgets(
        self,
        sections: list[ScriptSection],
        total_duration: float,
        weights: Optional[dict[int, float]] = None,
    ) -> list[SectionBudget]:
        """
        Split total_duration across sections in proportion to their narration length.

        Weights come from measured narration seconds when given (keyed by
        position after sorting), otherwise from each section's estimated
        duration. Word counts and then an equal split are used when no usable
        weight exists.

        Args:
            sections: Script sections in any order
            total_duration: Narration duration to distribute
            weights: Optional measured seconds per section position

        Returns:
            Budgets in section order; they sum to total_duration

        Raises:
            InvalidInput: If sections is empty or total_duration is not positive
        """
        if not sections:
            raise InvalidInput("Cannot budget footage for an empty script")
        if total_duration <= 0:
            raise InvalidInput(f"Narration duration must be positive, got {total_duration}")

        ordered = sorted(sections, key=lambda s: s.order_index)

        if weights:
            raw = [max(0.0, weights.get(i, 0.0)) for i in range(len(ordered))]
        else:
            raw = [max(0.0, parse_duration(s.estimated_duration)) for s in ordered]
        if sum(raw) <= 0:
            raw = [estimate_spoken_duration(f"{s.title} {s.content}") for s in ordered]
        if sum(raw) <= 0:
            raw = [1.0] * len(ordered)

        weight_total = sum(raw)
        budgets: list[SectionBudget] = []
        start = 0.0
        for i, (section, weight) in enumerate(zip(ordered, raw)):
            if i == len(ordered) - 1:
                budget = max(0.0, total_duration - start)
            else:
                budget = total_duration * weight / weight_total
            budgets.append(SectionBudget(section=section, section_index=i, budget_seconds=budget, start_seconds=start))
            start += budget

        return budgets

    def select(self, sections: list[SectionBudget], total_duration: float) -> list[VideoSegmentPlan]:
        """
        Choose clips for every section.

        Each section takes its own candidates (longest first, then by id)
        until its budget is met. Unused candidates and the unused tails of
        partly used clips form a shared pool that backfills sections still
        short of budget. Generic search terms widen the pool when section
        searches fall short.

        Args:
            sections: Sections with footage budgets (see compute_budgets)
            total_duration: Narration duration the footage must cover

        Returns:
            Plans in section order

        Raises:
            InvalidInput: If there are no sections or total_duration is not positive
            InsufficientFootage: If selected footage covers less than the minimum ratio
            FootageLookupError: If the catalog cannot be queried
        """
        if not sections:
            raise InvalidInput("Cannot select footage for an empty script")
        if total_duration <= 0:
            raise InvalidInput(f"Narration duration must be positive, got {total_duration}")

        budgets = sorted(sections, key=lambda b: b.section_index)
        target_pool = total_duration * self.settings.target_coverage_buffer

        self.logger.info(f"Selecting footage for {len(budgets)} sections covering {total_duration:.2f}s")

        used_ids: set[str] = set()
        per_section: dict[int, list[FootageClip]] = {}
        for budget in budgets:
            keywords = extract_keywords(f"{budget.section.title} {budget.section.content}")
            keywords = keywords[: self.settings.max_keywords_per_section]
            candidates = self.catalog.search(
                keywords, min_duration_hint=budget.budget_seconds * self.settings.target_coverage_buffer
            )
            per_section[budget.section_index] = self._usable(candidates, used_ids)
            used_ids.update(c.id for c in per_section[budget.section_index])

        pool_seconds = sum(c.duration_seconds for clips in per_section.values() for c in clips)
        generic: list[FootageClip] = []
        if pool_seconds < target_pool and self.settings.generic_query_terms:
            self.logger.info(
                f"Section searches found {pool_seconds:.1f}s of {target_pool:.1f}s wanted, trying generic terms"
            )
            generic = self._usable(
                self.catalog.search(self.settings.generic_query_terms, min_duration_hint=target_pool - pool_seconds),
                used_ids,
            )

        plans: dict[int, list[VideoSegmentPlan]] = {b.section_index: [] for b in budgets}
        remaining = {b.section_index: b.budget_seconds for b in budgets}
        leftovers: list[_Slice] = []

        for budget in budgets:
            idx = budget.section_index
            for clip in per_section[idx]:
                if remaining[idx] <= EPSILON:
                    leftovers.append(_Slice(clip))
                    continue
                used = self._assign(_Slice(clip), idx, remaining, plans, leftovers)
                self.logger.debug(f"Section {idx}: clip {clip.id} for {used:.2f}s")

        leftovers.extend(_Slice(clip) for clip in generic)
        self._backfill(budgets, remaining, plans, leftovers)

        ordered_plans = [plan for b in budgets for plan in plans[b.section_index]]
        report = self.coverage_report(ordered_plans, total_duration)

        if report.coverage_ratio < self.settings.min_coverage_ratio:
            self.logger.warning(
                f"Insufficient footage: {report.available_seconds:.1f}s for {total_duration:.1f}s "
                f"({report.coverage_ratio:.0%} coverage)"
            )
            raise InsufficientFootage(report.available_seconds, total_duration, self.settings.min_coverage_ratio)

        if report.needs_looping:
            self.logger.warning(
                f"Footage covers {report.coverage_ratio:.0%} of narration; compositor will loop "
                f"{total_duration - report.planned_seconds:.1f}s"
            )

        self.logger.info(
            f"Selected {len(ordered_plans)} segments: {report.planned_seconds:.1f}s planned, "
            f"{report.coverage_ratio:.2f}x coverage"
        )
        return ordered_plans

    def _usable(self, candidates: list[FootageClip], used_ids: set[str]) -> list[FootageClip]:
        """Drop duplicates, clips used elsewhere and clips without a positive duration."""
        usable: dict[str, FootageClip] = {}
        for clip in candidates:
            if clip.duration_seconds <= 0:
                self.logger.warning(f"Skipping clip {clip.id}: non-positive duration {clip.duration_seconds}")
                continue
            if clip.id in used_ids or clip.id in usable:
                continue
            usable[clip.id] = clip
        return sorted(usable.values(), key=candidate_order)

    def _assign(
        self,
        piece: _Slice,
        section_index: int,
        remaining: dict[int, float],
        plans: dict[int, list[VideoSegmentPlan]],
        leftovers: list[_Slice],
    ) -> float:
        """Plan as much of piece as the section needs; return the unused tail to leftovers."""
        use = min(piece.remaining, remaining[section_index])
        plans[section_index].append(
            VideoSegmentPlan(
                clip=piece.clip,
                section_index=section_index,
                start_offset_seconds=piece.offset,
                use_seconds=use,
            )
        )
        remaining[section_index] -= use
        if piece.remaining - use > EPSILON:
            leftovers.append(_Slice(piece.clip, piece.offset + use))
        return use

    def _backfill(
        self,
        budgets: list[SectionBudget],
        remaining: dict[int, float],
        plans: dict[int, list[VideoSegmentPlan]],
        leftovers: list[_Slice],
    ) -> None:
        """Lend leftover footage to sections still short of budget, in section order."""
        for budget in budgets:
            idx = budget.section_index
            while remaining[idx] > EPSILON and leftovers:
                leftovers.sort(key=lambda s: (-s.remaining, s.clip.id, s.offset))
                piece = leftovers.pop(0)
                used = self._assign(piece, idx, remaining, plans, leftovers)
                self.logger.debug(f"Section {idx}: backfilled clip {piece.clip.id} for {used:.2f}s")

    def coverage_report(self, plans: list[VideoSegmentPlan], total_duration: float) -> CoverageReport:
        """
        Summarize how well plans cover the narration.

        Available seconds count each distinct clip's full duration once.
        """
        if total_duration <= 0:
            raise InvalidInput(f"Narration duration must be positive, got {total_duration}")

        distinct: dict[str, float] = {}
        for plan in plans:
            distinct[plan.clip.id] = plan.clip.duration_seconds
        available = sum(distinct.values())
        planned = sum(plan.use_seconds for plan in plans)

        return CoverageReport(
            available_seconds=available,
            planned_seconds=planned,
            required_seconds=total_duration,
            coverage_ratio=available / total_duration,
            needs_looping=planned + EPSILON < total_duration * self.settings.full_coverage_ratio,
        )
