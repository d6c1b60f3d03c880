"""Provider that evaluates flags through a GO Feature Flag relay proxy, with caching and usage-data collection."""