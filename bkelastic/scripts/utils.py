from collections import OrderedDict

import click


class NaturalOrderGroup(click.Group):
    def __init__(self, name=None, commands=None, **attrs):
        if commands is None:
            commands = OrderedDict()
        elif not isinstance(commands, OrderedDict):
            commands = OrderedDict(commands)
        click.Group.__init__(self, name=name,
                             commands=commands,
                             **attrs)

    def list_commands(self, ctx):
        return self.commands.keys()


def get_provider_config(provider, region):
    provider_config = {"type": provider}
    if region:
        provider_config["region"] = region
    return provider_config
