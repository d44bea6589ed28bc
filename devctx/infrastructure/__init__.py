"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (git, AI endpoints, the file
system, the terminal) by implementing the interfaces defined in the domain
layer. Also hosts the prompt engine under ``optimization``.
"""
