"""Discord Reminder Bot - Main Bot.

Users register one-off reminders (date, time, message, optional mentions) and
the bot posts them to the channel when they come due.
"""

import discord
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from config import DISCORD_TOKEN, SUPABASE_URL, SUPABASE_KEY
from domains.reminders.store import create_store
from domains.reminders.messaging import DiscordMessenger
from domains.reminders.sessions import RegistrationSessionManager
from domains.reminders.scheduler import DeliveryScheduler
from domains.reminders.handler import ReminderCommands
from domains.reminders.views import NO_PINGS, ReminderDetailsModal, build_view

# Initialize bot
intents = discord.Intents.default()
intents.message_content = True
bot = commands.Bot(command_prefix="/", intents=intents)

# Initialize scheduler
scheduler = AsyncIOScheduler()

# Reminder components
store = create_store(SUPABASE_URL, SUPABASE_KEY)
sessions = RegistrationSessionManager(store)
reminder_commands = ReminderCommands(sessions, store)
delivery = DeliveryScheduler(store, DiscordMessenger(bot))


@bot.event
async def on_ready():
    """Called when bot is connected and ready."""
    logger.info(f"Logged in as {bot.user}")

    # Sync slash commands with Discord
    try:
        synced = await bot.tree.sync()
        logger.info(f"Synced {len(synced)} slash commands")
    except Exception as e:
        logger.error(f"Failed to sync slash commands: {e}")

    # on_ready fires again after reconnects
    if not scheduler.running:
        delivery.start(scheduler)
        scheduler.start()
        logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")


@bot.event
async def on_message(message):
    """Handle incoming messages."""
    # Ignore bot messages
    if message.author.bot:
        return

    async def notify(text: str):
        await message.channel.send(text)

    reply = await reminder_commands.handle_message(
        message.content,
        message.author.id,
        message.channel.id,
        notify=notify
    )
    if reply is None:
        return

    view = build_view(reply.step, reminder_commands, message.author.id)
    if view is None:
        await message.channel.send(reply.text, allowed_mentions=NO_PINGS)
        return

    view.message = await message.channel.send(reply.text, view=view, allowed_mentions=NO_PINGS)


@bot.tree.command(name="remind", description="Register a one-off reminder")
async def cmd_remind(interaction: discord.Interaction):
    """Open the reminder details form."""
    reminder_commands.start_registration(interaction.user.id)
    await interaction.response.send_modal(ReminderDetailsModal(reminder_commands))


@bot.tree.command(name="reminders", description="List your pending reminders")
async def cmd_reminders(interaction: discord.Interaction):
    """List pending reminders."""
    reply = await reminder_commands.list_reminders(interaction.user.id)
    await interaction.response.send_message(reply.text, ephemeral=True)


@bot.tree.command(name="now", description="Show the current reminder-clock time")
async def cmd_now(interaction: discord.Interaction):
    """Slash equivalent of /time."""
    reply = reminder_commands.current_time()
    await interaction.response.send_message(reply.text, ephemeral=True)


@bot.event
async def on_error(event, *args, **kwargs):
    """Handle errors."""
    logger.exception(f"Bot error in {event}")


def main():
    """Entry point."""
    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN not set")
        return

    logger.info("Starting Reminder Bot...")
    bot.run(DISCORD_TOKEN)


if __name__ == "__main__":
    main()
