"""Have an asynchronous conversation.

Commands:
    async - it will ask how long to count for
    count <milliseconds> - it will count that long once started
    start - it starts counting
"""

import asyncio

from playbook import Robot


class AsyncConversation:
    """Counts for as long as the user asks, replying when done."""

    def __init__(self, response):
        self.milliseconds = 0
        self.ready = response.dialogue.add_path(
            'Say "count <milliseconds>" for how many milliseconds I should count.',
            [(r"/count (.*)/", self.count)],
            key="async-setup",
        )

    def count(self, response):
        try:
            self.milliseconds = int(response.match.group(1))
        except ValueError:
            return response.dialogue.send("sorry that's not an integer")
        prompt = (
            f"OK, I'll count to {self.milliseconds} milliseconds. "
            'Say "start" when you want me to start'
        )
        return response.dialogue.add_path(prompt, [(r"/start/", self.start)], key="async-count")

    async def start(self, response):
        await response.dialogue.send("Counting...")
        await asyncio.sleep(self.milliseconds / 1000)
        await response.dialogue.send("Done!")


def setup(robot: Robot) -> None:
    """Add the scene listener to a robot using a playbook."""

    async def converse(response):
        await AsyncConversation(response).ready

    robot.playbook.scene_hear(r"/async/", {"timeout": 10000}, "async-conversation", converse)
