import asyncio
import random
from jobguard import DuplicateDetector, InMemoryAtomicCache, Message, Queue
from jobguard.utils.logging import setup_logging, get_logger

setup_logging()
logger = get_logger("WorkerLoop")

ORDERS = Queue(url="https://sqs.local/000000000000/orders", visibility_timeout=30)


async def worker(name: str, inbox: asyncio.Queue, detector: DuplicateDetector):
    while True:
        message = await inbox.get()
        try:
            if await detector.afound_duplicate(message):
                logger.info(f"[{name}] skipping duplicate {message.id}")
                continue
            logger.info(f"[{name}] processing {message.id}")
            await asyncio.sleep(0.05)
        finally:
            inbox.task_done()


async def run():
    # Swap for DuplicateDetector.from_settings() to share claims across hosts
    detector = DuplicateDetector(cache=InMemoryAtomicCache(), dedupe_strategy="relaxed")
    inbox: asyncio.Queue = asyncio.Queue()

    # At-least-once delivery: some ids arrive more than once
    ids = [f"order-{i}" for i in range(10)]
    for message_id in ids + random.sample(ids, 5):
        inbox.put_nowait(Message(id=message_id, queue=ORDERS))

    workers = [asyncio.create_task(worker(f"w{i}", inbox, detector)) for i in range(3)]
    await inbox.join()
    for task in workers:
        task.cancel()
    await asyncio.gather(*workers, return_exceptions=True)
    detector.close()


if __name__ == "__main__":
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
