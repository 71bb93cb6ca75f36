from .publisher import DomainEventPublisher


__all__ = ["DomainEventPublisher"]
