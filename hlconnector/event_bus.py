"""A prioritised publish/subscribe bus for system events."""

from __future__ import annotations

import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .event_types import EventPriority, SystemEvent

log = logging.getLogger(__name__)


@dataclass
class EventBusConfig:
    high_priority_buffer_size: int = 1000
    normal_priority_buffer_size: int = 10000
    market_data_buffer_size: int = 100000
    max_subscribers_per_topic: int = 100
    enable_metrics: bool = True
    batch_size: int = 100
    batch_timeout_ms: int = 10


class EventBusError(Exception):
    """A failure to hand an event to the bus."""


class EventBusFull(EventBusError):
    """The priority queue for the event has no room."""


class EventBusClosed(EventBusError):
    """The bus has been stopped."""


class EventFilter(ABC):
    """Decides whether the bus accepts an event."""

    @abstractmethod
    def should_process(self, event: SystemEvent) -> bool:
        ...

    @abstractmethod
    def name(self) -> str:
        ...


class TopicFilter(EventFilter):
    """Accepts events whose topic starts with one of the allowed prefixes, or any with "*"."""

    def __init__(self, name: str, allowed_topics: list[str]) -> None:
        self._name = name
        self.allowed_topics = list(allowed_topics)

    def should_process(self, event: SystemEvent) -> bool:
        topic = event.filter_topic()
        return any(topic.startswith(allowed) or allowed == "*" for allowed in self.allowed_topics)

    def name(self) -> str:
        return self._name


@dataclass(frozen=True)
class EventBusMetrics:
    events_processed: int
    events_dropped: int
    subscriber_count: int
    high_priority_queue_len: int
    normal_priority_queue_len: int
    low_priority_queue_len: int


class _Channel:
    """A bounded queue that can be closed."""

    def __init__(self, capacity: int) -> None:
        self.queue: "queue.Queue[SystemEvent]" = queue.Queue(maxsize=capacity)
        self.closed = False

    def send(self, event: SystemEvent) -> None:
        if self.closed:
            raise EventBusClosed("disconnected")
        try:
            self.queue.put_nowait(event)
        except queue.Full:
            raise EventBusFull("full") from None


class _Channels:
    def __init__(self, config: EventBusConfig) -> None:
        self.high = _Channel(config.high_priority_buffer_size)
        self.normal = _Channel(config.normal_priority_buffer_size)
        self.low = _Channel(config.market_data_buffer_size)

    def route(self, event: SystemEvent) -> _Channel:
        priority = event.priority()
        if priority >= EventPriority.HIGH:
            return self.high
        if priority is EventPriority.NORMAL:
            return self.normal
        return self.low

    def all(self) -> tuple[_Channel, _Channel, _Channel]:
        return self.high, self.normal, self.low


class EventPublisher:
    """A lightweight handle that feeds events into a bus without filtering."""

    def __init__(self, channels: _Channels) -> None:
        self._channels = channels

    def publish(self, event: SystemEvent) -> None:
        try:
            self._channels.route(event).send(event)
        except EventBusFull:
            raise EventBusFull("Channel full") from None
        except EventBusClosed:
            raise EventBusClosed("Channel disconnected") from None


class EventBus:
    """Routes events by priority into queues and fans them out to topic subscribers."""

    def __init__(self, config: Optional[EventBusConfig] = None) -> None:
        self.config = config if config is not None else EventBusConfig()
        self._channels = _Channels(self.config)
        self._subscribers: dict[str, list["queue.SimpleQueue[SystemEvent]"]] = {}
        self._filters: list[EventFilter] = []
        self._events_processed = 0
        self._events_dropped = 0
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    def publish(self, event: SystemEvent) -> None:
        """Queue an event unless a filter rejects it."""
        with self._lock:
            filters = list(self._filters)
        for event_filter in filters:
            if not event_filter.should_process(event):
                log.debug("Event filtered by %s: %r", event_filter.name(), event)
                return
        try:
            self._channels.route(event).send(event)
        except EventBusFull:
            if self.config.enable_metrics:
                with self._lock:
                    self._events_dropped += 1
            log.warning("Event bus channel full, dropping event")
            raise EventBusFull("Event bus channel full") from None
        except EventBusClosed:
            log.error("Event bus disconnected")
            raise EventBusClosed("Event bus disconnected") from None
        if self.config.enable_metrics:
            with self._lock:
                self._events_processed += 1

    def subscribe(self, topic: str) -> "queue.SimpleQueue[SystemEvent]":
        """A queue receiving the topic's events; unregistered once the topic is full."""
        receiver: "queue.SimpleQueue[SystemEvent]" = queue.SimpleQueue()
        with self._lock:
            subscribers = self._subscribers.setdefault(topic, [])
            if len(subscribers) >= self.config.max_subscribers_per_topic:
                log.warning("Max subscribers reached for topic: %s", topic)
                return receiver
            subscribers.append(receiver)
        log.info("New subscriber for topic: %s", topic)
        return receiver

    def add_filter(self, event_filter: EventFilter) -> None:
        with self._lock:
            self._filters.append(event_filter)
        log.info("Added event filter")

    def _distribute(self, event: SystemEvent) -> None:
        for topic in event.topics():
            with self._lock:
                subscribers = list(self._subscribers.get(topic, ()))
            for subscriber in subscribers:
                subscriber.put(event)

    def _run(self, channel: _Channel, batch_limit: int, label: str) -> None:
        log.info("%s priority event processor started", label)
        timeout = max(self.config.batch_timeout_ms / 1000.0, 0.001)
        while not self._stop.is_set():
            try:
                first = channel.queue.get(timeout=timeout)
            except queue.Empty:
                continue
            batch = [first]
            while len(batch) < batch_limit:
                try:
                    batch.append(channel.queue.get_nowait())
                except queue.Empty:
                    break
            for event in batch:
                self._distribute(event)
            with self._lock:
                self._events_processed += len(batch)
        log.info("%s priority event processor stopped", label)

    def start_processing(self) -> None:
        """Start the worker threads that deliver queued events to subscribers."""
        if self._stop.is_set():
            raise EventBusClosed("Event bus disconnected")
        if self._threads:
            return
        batch_size = max(self.config.batch_size, 1)
        workers = (
            (self._channels.high, batch_size, "High"),
            (self._channels.normal, 1, "Normal"),
            (self._channels.low, batch_size * 2, "Low"),
        )
        for channel, limit, label in workers:
            thread = threading.Thread(
                target=self._run,
                args=(channel, limit, label),
                name=f"event-bus-{label.lower()}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        log.info("Event bus processing started")

    def stop(self) -> None:
        """Close the bus to new events and stop the worker threads."""
        for channel in self._channels.all():
            channel.closed = True
        self._stop.set()
        for thread in self._threads:
            thread.join()
        self._threads = []

    def metrics(self) -> EventBusMetrics:
        with self._lock:
            return EventBusMetrics(
                events_processed=self._events_processed,
                events_dropped=self._events_dropped,
                subscriber_count=len(self._subscribers),
                high_priority_queue_len=self._channels.high.queue.qsize(),
                normal_priority_queue_len=self._channels.normal.queue.qsize(),
                low_priority_queue_len=self._channels.low.queue.qsize(),
            )

    def publisher(self) -> EventPublisher:
        return EventPublisher(self._channels)