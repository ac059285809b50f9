import jax

# Elimination results are compared against dense numpy solves.
jax.config.update("jax_enable_x64", True)
