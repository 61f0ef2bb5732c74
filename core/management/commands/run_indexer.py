"""Run the chain indexer: catch up from the cursor, then poll until signalled."""

import logging
import signal
import threading

from django.core.management.base import BaseCommand

from core.adapters.chain_adapter import ChainAdapter
from core.indexer import ChainIndexer
from core.store import EventStore

logger = logging.getLogger(__name__)


class Command(BaseCommand):
	help = "Mirror token events from the chain into the local store"

	def add_arguments(self, parser):
		parser.add_argument("--once", action="store_true", help="index up to the current head and exit")
		parser.add_argument("--poll-interval", type=float, default=None, help="seconds between polls")
		parser.add_argument("--database", default="default")

	def handle(self, *args, **options):
		indexer = ChainIndexer(ChainAdapter(), EventStore(using=options["database"]))
		stop = threading.Event()

		if options["once"]:
			result = indexer.sync(stop)
			self.stdout.write(f"indexed {result.events} events in {result.chunks} chunks; cursor at {indexer.store.get_cursor()}")
			return

		def _stop(signum, frame):
			logger.info("signal %s received, stopping after the current chunk", signum)
			stop.set()

		signal.signal(signal.SIGINT, _stop)
		signal.signal(signal.SIGTERM, _stop)
		indexer.run_forever(stop, poll_interval=options["poll_interval"])
