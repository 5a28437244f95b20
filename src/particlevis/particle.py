class Particle:
    """A single simulated particle."""

    def __init__(self, base_color, size, path_distance=0.0, texture=None):
        self.x = 0.0
        self.y = 0.0
        self.vx = 0.0
        self.vy = 0.0
        # Polar state, only used by the spiral and galaxy behaviours
        self.radius = 0.0
        self.angle = 0.0
        self.angular_velocity = 0.0
        self.base_color = base_color
        self.color = base_color
        self.size = size
        self.rotation = 0.0
        self.path_distance = path_distance
        self.bar_index = 0
        # weakref.ref into an externally owned texture pool, or None
        self.texture = texture

    def move(self, speed):
        """Advance the position along the current velocity."""
        self.x += self.vx * speed
        self.y += self.vy * speed

    def texture_image(self):
        """The referenced texture, or None once it has been released."""
        if self.texture is None:
            return None
        return self.texture()

    def is_offscreen(self, width, height, margin):
        return (
            self.x < -margin
            or self.x > width + margin
            or self.y < -margin
            or self.y > height + margin
        )
