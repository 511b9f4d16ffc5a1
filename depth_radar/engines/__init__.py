"""Pure order-book engines: detection, summaries, feature tags and the depth client."""
