import glob, json, shutil
from pathlib import Path
from tqdm    import tqdm

from sea_ice_ops_tasks import ExternalTask

__all__ = ["SeaIceOpsAssets", "ASSET_STEPS", "METRIC_STEPS"]

ASSET_STEPS  = ["extract", "geotiff", "forecast_movie", "forecast_stills",
                "stddev_movie", "stddev_stills", "docs"]
METRIC_STEPS = ["bin_accuracy", "plot_metrics", "sic_error", "sie_error"]
F_checkpoint = ".checkpoint.json"
F_done       = ".done"


class SeaIceOpsAssets:

    def __init__(self, **kwargs):
        return

    ####################################################################################################
    ##                                     DIRECTORIES & FILES
    ####################################################################################################
    def provision_directories(self):
        """
        Create clean output and log trees for the forecast.

        Existing trees are removed first so nothing from an earlier run survives,
        unless the run was configured to resume from checkpoints.
        """
        for D_ in (self.config.D_output, self.config.D_log):
            if D_.exists():
                if self.config.resume:
                    self.logger.info(f"Output directory {D_} already exists, keeping it to resume")
                    continue
                self.logger.info(f"Output directory {D_} already exists, removing")
                shutil.rmtree(D_)
            self.logger.info(f"Making {D_}")
            D_.mkdir(parents=True, exist_ok=True)

    def rename_gfx(self, D_gfx, F_prefix, F_glob):
        """
        Strip `F_prefix` from every file under `D_gfx` matching ``F_prefix + F_glob``.

        Renamed files land at the top of `D_gfx`. Only the leading prefix is
        removed, once; the rest of the name is left as the tool wrote it.
        """
        D_gfx   = Path(D_gfx)
        renamed = []
        for P_ in sorted(D_gfx.rglob(glob.escape(F_prefix) + F_glob)):
            P_new = Path(D_gfx, P_.name[len(F_prefix):])
            shutil.move(str(P_), str(P_new))
            self.logger.debug(f"renamed '{P_}' -> '{P_new}'")
            renamed.append(P_new)
        return renamed

    def produce_docs(self, D_date):
        for F_src, F_dst in self.config.templates:
            shutil.copy(Path(self.config.D_templates, F_src), Path(D_date, F_dst))
            self.logger.debug(f"copied {F_src} -> {Path(D_date, F_dst)}")

    ####################################################################################################
    ##                                     CHECKPOINTS
    ####################################################################################################
    def load_checkpoint(self, D_date):
        P_ = Path(D_date, F_checkpoint)
        if not (self.config.resume and P_.exists()):
            return []
        with open(P_, 'r') as f:
            return json.load(f).get("completed", [])

    def record_step(self, D_date, completed, step):
        completed.append(step)
        with open(Path(D_date, F_checkpoint), 'w') as f:
            json.dump({"completed": completed}, f, indent=2)

    def date_is_done(self, D_date):
        return self.config.resume and Path(D_date, F_done).exists()

    ####################################################################################################
    ##                                     TASK BUILDERS
    ####################################################################################################
    def gfx_prefix(self, date_str):
        """Filename prefix the IceNet plotting and geotiff tools put on their outputs."""
        return f"{self.config.forecast_name}.{date_str}."

    def _fc_args(self, date_str):
        return [self.config.hemisphere, str(self.config.P_forecast), date_str]

    def geotiff_task(self, date_str, D_date):
        P_date = Path(D_date, f"{date_str}.nc")
        return ExternalTask(name             = "geotiff",
                            argv             = (self.config.tool("geotiff"), "-o", str(D_date), str(P_date),
                                                date_str, self.config.leadtime_range),
                            expected_outputs = ("**/" + glob.escape(self.gfx_prefix(date_str)) + "*.tiff",),
                            D_output         = Path(D_date))

    def plot_forecast_task(self, date_str, D_date, stddev=False, movie=False):
        """
        ``icenet_plot_forecast`` for the ensemble mean, or the ensemble standard
        deviation when `stddev`, as an mp4 when `movie` else as per-leadtime stills.
        """
        argv = [self.config.tool("plot_forecast")] + self.config.region_args() + self.config.plot_args()
        if stddev:
            argv.append("-s")
        argv += ["-o", str(D_date), "-l", self.config.leadtime_range]
        if movie:
            argv += ["-f", "mp4"]
        argv += self._fc_args(date_str)
        suffix = ("stddev." if stddev else "") + ("mp4" if movie else "png")
        name   = ("stddev" if stddev else "forecast") + ("_movie" if movie else "_stills")
        return ExternalTask(name             = name,
                            argv             = tuple(argv),
                            expected_outputs = ("**/" + glob.escape(self.gfx_prefix(date_str)) + f"*.{suffix}",),
                            D_output         = Path(D_date))

    def bin_accuracy_tasks(self, date_str, D_date):
        tasks = []
        for thresh in self.config.thresholds:
            F_out = f"bin_accuracy.{thresh}.png"
            argv  = ([self.config.tool("bin_accuracy")] + self.config.region_args() +
                     ["-e", "-b", "-t", str(thresh), "-o", str(Path(D_date, F_out))] + self._fc_args(date_str))
            tasks.append(ExternalTask(name             = f"bin_accuracy.{thresh}",
                                      argv             = tuple(argv),
                                      expected_outputs = (F_out,),
                                      D_output         = Path(D_date)))
        return tasks

    def plot_metrics_task(self, date_str, D_date):
        # the trailing separator tells icenet_plot_metrics to treat -o as a directory
        argv = ([self.config.tool("plot_metrics")] + self.config.region_args() +
                ["-e", "-b", "-s", "-o", f"{D_date}/"] + self._fc_args(date_str))
        return ExternalTask(name="plot_metrics", argv=tuple(argv), D_output=Path(D_date))

    def sic_error_task(self, date_str, D_date):
        F_out = f"{date_str}.sic_error.mp4"
        argv  = ([self.config.tool("sic_error")] + self.config.region_args() +
                 ["-o", str(Path(D_date, F_out))] + self._fc_args(date_str))
        return ExternalTask(name="sic_error", argv=tuple(argv), expected_outputs=(F_out,), D_output=Path(D_date))

    def sie_error_task(self, date_str, D_date):
        F_out = f"{date_str}.sie_error.25.png"
        argv  = ([self.config.tool("sie_error")] + self.config.region_args() +
                 ["-e", "-b", "-o", str(Path(D_date, F_out))] + self._fc_args(date_str))
        return ExternalTask(name="sie_error", argv=tuple(argv), expected_outputs=(F_out,), D_output=Path(D_date))

    ####################################################################################################
    ##                                     PER-DATE PIPELINE
    ####################################################################################################
    def asset_steps(self, date_str, D_date):
        """Ordered (name, callable) pairs producing the always-on artifacts for one date."""
        F_prefix = self.gfx_prefix(date_str)

        def plot_then_rename(stddev, movie, F_glob):
            def step():
                self.runner.run(self.plot_forecast_task(date_str, D_date, stddev=stddev, movie=movie))
                self.rename_gfx(D_date, F_prefix, F_glob)
            return step

        def geotiff():
            self.runner.run(self.geotiff_task(date_str, D_date))
            self.rename_gfx(D_date, F_prefix, "*.tiff")

        steps = {"extract"        : lambda: self.extract_forecast_date(date_str, Path(D_date, f"{date_str}.nc")),
                 "geotiff"        : geotiff,
                 "forecast_movie" : plot_then_rename(False, True , "*.mp4"),
                 "forecast_stills": plot_then_rename(False, False, "*.png"),
                 "stddev_movie"   : plot_then_rename(True , True , "*.stddev.mp4"),
                 "stddev_stills"  : plot_then_rename(True , False, "*.stddev.png"),
                 "docs"           : lambda: self.produce_docs(D_date)}
        return [(name, steps[name]) for name in ASSET_STEPS]

    def metric_steps(self, date_str, D_date):
        def bin_accuracy():
            for task in self.bin_accuracy_tasks(date_str, D_date):
                self.runner.run(task)
        steps = {"bin_accuracy": bin_accuracy,
                 "plot_metrics": lambda: self.runner.run(self.plot_metrics_task(date_str, D_date)),
                 "sic_error"   : lambda: self.runner.run(self.sic_error_task(date_str, D_date)),
                 "sie_error"   : lambda: self.runner.run(self.sie_error_task(date_str, D_date))}
        return [(name, steps[name]) for name in METRIC_STEPS]

    def _run_steps(self, steps, D_date, completed):
        for name, step in steps:
            if name in completed:
                self.logger.info(f"step '{name}' already completed for {Path(D_date).name}, skipping")
                continue
            step()
            self.record_step(D_date, completed, name)

    def produce_date(self, date_str):
        """
        Produce every artifact for one forecast date.

        Any failing step raises immediately; later steps and later dates are not attempted.
        Returns True if the date's metrics were produced.
        """
        D_date = Path(self.config.D_output, date_str)
        if self.date_is_done(D_date):
            self.logger.info(f"{D_date} already complete, skipping")
            return False
        self.logger.info(f"Making {D_date} for forecast date {date_str}")
        D_date.mkdir(parents=True, exist_ok=True)
        completed = self.load_checkpoint(D_date)
        self._run_steps(self.asset_steps(date_str, D_date), D_date, completed)
        if self.config.skip_metrics:
            Path(D_date, F_done).touch()
            return False
        latest = self.latest_observation()
        if not self.metrics_available(date_str, latest=latest):
            self.logger.info(f"We do not have observational SIC data ({latest:%Y-%m-%d}) for plotting forecast date {date_str}")
            return False
        self.logger.info(f"We have necessary SIC data ({latest:%Y-%m-%d}) for forecast date {date_str}")
        self._run_steps(self.metric_steps(date_str, D_date), D_date, completed)
        Path(D_date, F_done).touch()
        return True

    def produce_assets(self):
        dates = self.forecast_dates()
        for date_str in tqdm(dates, desc=f"{self.config.forecast_name} forecast dates", unit="date"):
            self.produce_date(date_str)
        return dates
