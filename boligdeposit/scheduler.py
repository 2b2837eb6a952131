from apscheduler.schedulers.asyncio import AsyncIOScheduler

# Shared scheduler; jobs are installed and started from the app lifespan
scheduler = AsyncIOScheduler(timezone="UTC")
