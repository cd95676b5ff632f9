"""Discord widgets for the registration flow.

- StartRegistrationView: button that opens the details form
- ReminderDetailsModal: date, time and message inputs
- RecipientSelectView: user select plus a "No mention" button

Widgets only forward events to ReminderCommands and render the replies.
"""

from typing import Optional

import discord

from logger import logger
from . import config
from .handler import CommandReply, ReminderCommands, Step

NO_PINGS = discord.AllowedMentions.none()


def build_view(step: Optional[Step], commands: ReminderCommands, owner_id: int) -> Optional[discord.ui.View]:
    """Widget for a reply step, or None."""
    if step is Step.DETAILS:
        return StartRegistrationView(commands, owner_id)
    if step is Step.RECIPIENTS:
        return RecipientSelectView(commands, owner_id)
    return None


async def respond(interaction: discord.Interaction, reply: CommandReply, commands: ReminderCommands) -> None:
    """Send a CommandReply as the interaction response."""
    kwargs = {"ephemeral": reply.ephemeral, "allowed_mentions": NO_PINGS}
    view = build_view(reply.step, commands, interaction.user.id)
    if view is not None:
        kwargs["view"] = view

    await interaction.response.send_message(reply.text, **kwargs)

    if view is not None:
        view.message = await interaction.original_response()


class OwnedView(discord.ui.View):
    """View that only its owner may use; disables itself on timeout."""

    def __init__(self, owner_id: int, timeout: Optional[float]):
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.message: Optional[discord.Message] = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.owner_id:
            await interaction.response.send_message("This registration belongs to someone else.", ephemeral=True)
            return False
        return True

    async def on_timeout(self):
        for item in self.children:
            item.disabled = True
        if self.message is None:
            return
        try:
            await self.message.edit(view=self)
        except discord.HTTPException as e:
            logger.debug(f"Could not disable expired reminder view: {e}")


class StartRegistrationView(OwnedView):
    def __init__(self, commands: ReminderCommands, owner_id: int):
        super().__init__(owner_id, timeout=180)
        self.commands = commands

    @discord.ui.button(label="Register reminder", style=discord.ButtonStyle.primary, custom_id=config.START_BUTTON_ID)
    async def start(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.commands.start_registration(interaction.user.id)
        await interaction.response.send_modal(ReminderDetailsModal(self.commands))


class ReminderDetailsModal(discord.ui.Modal, title="Register reminder"):
    date = discord.ui.TextInput(label="Date (YYYY/MM/DD)", placeholder="2025/11/24", max_length=10)
    time = discord.ui.TextInput(label="Time (HH:mm)", placeholder="15:00", max_length=5)
    body = discord.ui.TextInput(
        label="Message",
        style=discord.TextStyle.paragraph,
        placeholder="What should the reminder say?",
        max_length=1500
    )

    def __init__(self, commands: ReminderCommands):
        super().__init__(custom_id=config.DETAILS_MODAL_ID)
        self.commands = commands

    async def on_submit(self, interaction: discord.Interaction):
        async def notify(text: str):
            await interaction.followup.send(text, ephemeral=True)

        reply = self.commands.submit_details(
            interaction.user.id,
            interaction.channel_id,
            self.date.value,
            self.time.value,
            self.body.value,
            notify=notify
        )
        await respond(interaction, reply, self.commands)


class RecipientSelectView(OwnedView):
    def __init__(self, commands: ReminderCommands, owner_id: int):
        # Outlive the session slightly so a late click gets the "timed out" reply
        super().__init__(owner_id, timeout=commands.sessions.timeout_seconds + 5)
        self.commands = commands

    @discord.ui.select(
        cls=discord.ui.UserSelect,
        placeholder="Users to mention",
        min_values=0,
        max_values=config.MAX_MENTIONS,
        custom_id=config.RECIPIENT_SELECT_ID
    )
    async def recipients(self, interaction: discord.Interaction, select: discord.ui.UserSelect):
        reply = await self.commands.select_recipients(interaction.user.id, [u.id for u in select.values])
        await self._finish(interaction, reply)

    @discord.ui.button(label="No mention", style=discord.ButtonStyle.secondary, custom_id=config.NO_MENTION_BUTTON_ID)
    async def no_mention(self, interaction: discord.Interaction, button: discord.ui.Button):
        reply = await self.commands.confirm_no_mention(interaction.user.id)
        await self._finish(interaction, reply)

    async def _finish(self, interaction: discord.Interaction, reply: CommandReply):
        self.stop()
        await interaction.response.edit_message(content=reply.text, view=None, allowed_mentions=NO_PINGS)
