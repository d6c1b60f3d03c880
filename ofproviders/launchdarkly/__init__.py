"""Provider that evaluates flags through a LaunchDarkly client, and its logging interface."""