import logging
from core.domain.config import Strategy, Trigger, UpsellConfiguration
from core.rules.conditions import compare
from services.context_resolver import ContextResolver

logger = logging.getLogger(__name__)


class StrategySelector:
    """Decides which strategies apply to a request"""

    async def trigger_fires(self, trigger: Trigger, resolver: ContextResolver) -> bool:
        """Active trigger, exact event match, and every trigger condition holds"""
        if not trigger.active or trigger.event != resolver.request.context.event:
            return False
        for condition in trigger.conditions:
            value = await resolver.resolve_trigger_field(condition.field)
            if not compare(value, condition.operator, condition.value):
                return False
        return True

    async def strategy_matches(self, strategy: Strategy, resolver: ContextResolver) -> bool:
        """All conditions must match. No conditions always matches."""
        for condition in strategy.conditions:
            value = await resolver.resolve(condition.type)
            if not compare(value, condition.operator, condition.value):
                return False
        return True

    async def select_strategies(self, config: UpsellConfiguration, resolver: ContextResolver) -> list[Strategy]:
        """Strategies activated by a firing trigger whose conditions hold, highest priority first"""
        strategy_ids: set[str] = set()
        for trigger in config.triggers:
            if await self.trigger_fires(trigger, resolver):
                logger.debug(f"Trigger {trigger.id} fired for booking {resolver.request.booking_id}")
                strategy_ids.update(trigger.strategies)

        if not strategy_ids:
            return []

        candidates = [s for s in config.strategies if s.active and s.id in strategy_ids]
        selected = []
        for strategy in candidates:
            if await self.strategy_matches(strategy, resolver):
                selected.append(strategy)

        # sorted() is stable: equal priorities keep configuration order
        return sorted(selected, key=lambda s: s.priority, reverse=True)
