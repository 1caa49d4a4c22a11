from fakeelf.cli import launch

launch()
